"""Pytest fixtures for the artifact store tests."""

import shutil
import tempfile

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
import pytest

from config import ParameterReader, RecorderConfig
from library.abstractions import DMPParameters
from recording.abstractions import DataSample


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp = tempfile.mkdtemp()
    yield temp
    shutil.rmtree(temp, ignore_errors=True)


@pytest.fixture
def recorder_params(temp_dir):
    """Recorder parameters writing below the temporary directory."""
    config = RecorderConfig(
        write_out_raw_data=True,
        write_out_clmc_data=True,
        write_out_resampled_data=False,
        recorder_package_name="task_recorder2",
        recorder_data_directory_name=temp_dir,
    )
    return ParameterReader.from_config(config)


def make_dmp(scale: float, num_dimensions: int = 2, num_basis: int = 5) -> DMPParameters:
    """Create DMP parameters whose values are all derived from scale."""
    return DMPParameters(
        weights=np.full((num_dimensions, num_basis), scale),
        start=np.zeros(num_dimensions),
        goal=np.full(num_dimensions, scale),
        tau=scale,
    )


def make_samples(count: int, dt: float = 0.1, start: float = 0.0):
    """Create count samples of two channels spaced dt seconds apart."""
    return [
        DataSample(stamp=start + i * dt, names=["x", "y"], data=[float(i), float(-i)])
        for i in range(count)
    ]


@pytest.fixture
def dmp_factory():
    return make_dmp


@pytest.fixture
def sample_factory():
    return make_samples
