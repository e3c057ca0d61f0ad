"""Tests for the CLMC trajectory format."""

from pathlib import Path

import numpy as np
import pytest

from errors import InvalidArgumentError, StoreIOError
from recording.trajectory import CLMCTrajectory


@pytest.fixture
def trajectory():
    traj = CLMCTrajectory(["ros_time", "x", "y"], sampling_frequency=10.0)
    traj.add([0.0, 1.0, 2.0])
    traj.add([0.1, 3.0, 4.0])
    return traj


class TestCLMCFormat:
    """Tests for the on-disk layout."""

    def test_header_names_and_data(self, trajectory, temp_dir):
        path = Path(temp_dir) / "joint_states_trial_0.clmc"
        trajectory.write_to_clmc_file(path)

        content = path.read_bytes()
        header, names, data = content.split(b"\n", 2)
        assert header == b"6 3 2 10.000000"
        assert names == b"ros_time - x - y - "

        values = np.frombuffer(data, dtype=">f4")
        np.testing.assert_allclose(values, [0.0, 1.0, 2.0, 0.1, 3.0, 4.0], rtol=1e-6)

    def test_read_back(self, trajectory, temp_dir):
        path = Path(temp_dir) / "traj.clmc"
        trajectory.write_to_clmc_file(path)

        loaded = CLMCTrajectory.read_from_clmc_file(path)

        assert loaded.variable_names == ["ros_time", "x", "y"]
        assert loaded.units == ["-", "-", "-"]
        assert loaded.sampling_frequency == 10.0
        np.testing.assert_allclose(loaded.to_array(), trajectory.to_array(), rtol=1e-6)

    def test_truncated_file(self, trajectory, temp_dir):
        path = Path(temp_dir) / "traj.clmc"
        trajectory.write_to_clmc_file(path)
        path.write_bytes(path.read_bytes()[:-2])

        with pytest.raises(StoreIOError):
            CLMCTrajectory.read_from_clmc_file(path)


class TestValidation:
    """Tests for argument validation."""

    def test_row_width_must_match(self, trajectory):
        with pytest.raises(InvalidArgumentError):
            trajectory.add([1.0, 2.0])

    @pytest.mark.parametrize("names, frequency", [
        ([], 10.0),
        (["ros time"], 10.0),
        (["ros_time"], 0.0),
    ])
    def test_bad_construction(self, names, frequency):
        with pytest.raises(InvalidArgumentError):
            CLMCTrajectory(names, frequency)

    def test_unit_count(self):
        with pytest.raises(InvalidArgumentError):
            CLMCTrajectory(["ros_time", "x"], 10.0, units=["s"])

    def test_empty_trajectory_array(self):
        assert CLMCTrajectory(["x"], 1.0).to_array().shape == (0, 1)
