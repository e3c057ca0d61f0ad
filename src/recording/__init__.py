"""Task recorder IO: trial-sequenced recording of per-topic samples.

This package provides:
- Experiment descriptions, samples and sample buffers
- Persistent trial counters with completeness verification
- The per-topic recording session
- CLMC trajectory export
"""

from recording.abstractions import DataSample, Description, SampleBuffer, get_file_name
from recording.trial_versioning import (
    WriterRegistry,
    check_for_completeness,
    check_for_experiment_completeness,
    get_trial_id,
    increment_counter,
    peek_counter,
    read_counter,
    writer_registry,
)
from recording.trajectory import CLMCTrajectory
from recording.task_recorder_io import SessionState, TaskRecorderIO

__all__ = [
    # Abstractions
    "DataSample",
    "Description",
    "SampleBuffer",
    "get_file_name",
    # Trial versioning
    "WriterRegistry",
    "check_for_completeness",
    "check_for_experiment_completeness",
    "get_trial_id",
    "increment_counter",
    "peek_counter",
    "read_counter",
    "writer_registry",
    # Export
    "CLMCTrajectory",
    # Session
    "SessionState",
    "TaskRecorderIO",
]
