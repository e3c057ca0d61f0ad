"""Shared constants for the skill library and task recorder IO.

File endings, directory names and configuration keys used by library/,
recording/ and storage/.
"""

from typing import Tuple

# =============================================================================
# File endings
# =============================================================================

# Container files written by storage.serializer (torch.save archives)
ARTIFACT_FILE_ENDING: str = ".pt"
DATA_FILE_ENDING: str = ".pt"

COUNTER_FILE_ENDING: str = ".counter"
CLMC_FILE_ENDING: str = ".clmc"

# Suffix of in-flight files that are renamed into place once complete
TEMPORARY_FILE_ENDING: str = ".tmp"

TRIAL_SEPARATOR: str = "_trial_"

# =============================================================================
# Recording directory layout
# =============================================================================

RAW_DIRECTORY_NAME: str = "raw"
RESAMPLED_DIRECTORY_NAME: str = "resampled"

# Symlink in the data directory pointing at the most recently created experiment
LATEST_SYMLINK_NAME: str = "latest"

# =============================================================================
# Configuration keys consumed by the task recorder IO
# =============================================================================

WRITE_OUT_RAW_DATA: str = "write_out_raw_data"
WRITE_OUT_CLMC_DATA: str = "write_out_clmc_data"
WRITE_OUT_RESAMPLED_DATA: str = "write_out_resampled_data"
RECORDER_PACKAGE_NAME: str = "recorder_package_name"
RECORDER_DATA_DIRECTORY_NAME: str = "recorder_data_directory_name"

RECORDER_FLAG_KEYS: Tuple[str, ...] = (
    WRITE_OUT_RAW_DATA,
    WRITE_OUT_CLMC_DATA,
    WRITE_OUT_RESAMPLED_DATA,
)

# =============================================================================
# CLMC export
# =============================================================================

CLMC_TIME_VARIABLE: str = "ros_time"
CLMC_DEFAULT_UNIT: str = "-"

# Duration used when a buffer holds a single sample
SINGLE_SAMPLE_DURATION: float = 1.0
