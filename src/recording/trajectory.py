"""CLMC trajectory export.

A CLMC file is the fixed-format trajectory container read by the lab's legacy
tooling:

    <count> <cols> <rows> <frequency>\\n
    <name_0> <unit_0> <name_1> <unit_1> ... \\n
    <count big-endian float32 values, row-major>

where count = cols * rows.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from constants import CLMC_DEFAULT_UNIT
from errors import InvalidArgumentError, StoreIOError
from storage.paths import atomic_output

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_CLMC_DTYPE = np.dtype(">f4")


class CLMCTrajectory:
    """Fixed-width table of samples with a sampling frequency.

    Usage:
        trajectory = CLMCTrajectory(["ros_time", "x", "y"], sampling_frequency=100.0)
        trajectory.add([0.0, 1.0, 2.0])
        trajectory.write_to_clmc_file("reach_trial_0.clmc")
    """

    def __init__(
        self,
        variable_names: Sequence[str],
        sampling_frequency: float,
        units: Optional[Sequence[str]] = None,
    ) -> None:
        """Initialize an empty trajectory.

        Args:
            variable_names: Column names
            sampling_frequency: Samples per second, must be positive
            units: Optional unit per column (defaults to "-")

        Raises:
            InvalidArgumentError: If the columns or frequency are unusable
        """
        if not variable_names:
            raise InvalidArgumentError("A trajectory needs at least one variable")
        if any(not name or any(c.isspace() for c in name) for name in variable_names):
            raise InvalidArgumentError(
                f"Variable names must be non-empty and contain no whitespace: {list(variable_names)}"
            )
        if not sampling_frequency > 0.0:
            raise InvalidArgumentError(f"Sampling frequency must be positive, got {sampling_frequency}")
        if units is not None and len(units) != len(variable_names):
            raise InvalidArgumentError("Need exactly one unit per variable")

        self._variable_names: List[str] = list(variable_names)
        self._units: List[str] = list(units) if units is not None else [CLMC_DEFAULT_UNIT] * len(variable_names)
        self._sampling_frequency = float(sampling_frequency)
        self._rows: List[np.ndarray] = []

    @property
    def variable_names(self) -> List[str]:
        return list(self._variable_names)

    @property
    def units(self) -> List[str]:
        return list(self._units)

    @property
    def sampling_frequency(self) -> float:
        return self._sampling_frequency

    @property
    def num_cols(self) -> int:
        return len(self._variable_names)

    @property
    def num_rows(self) -> int:
        return len(self._rows)

    def add(self, row: Sequence[float]) -> None:
        """Append one row of values.

        Raises:
            InvalidArgumentError: If the row does not have one value per column
        """
        values = np.asarray(row, dtype=np.float64).ravel()
        if values.shape[0] != self.num_cols:
            raise InvalidArgumentError(
                f"Row has {values.shape[0]} values but trajectory has {self.num_cols} columns"
            )
        self._rows.append(values)

    def to_array(self) -> np.ndarray:
        """Return the data as a (rows, cols) float64 array."""
        if not self._rows:
            return np.zeros((0, self.num_cols), dtype=np.float64)
        return np.vstack(self._rows)

    def write_to_clmc_file(self, path: PathLike) -> None:
        """Write the trajectory in CLMC format, replacing any previous file.

        Raises:
            StoreIOError: If the file cannot be written
        """
        data = self.to_array()
        header = f"{data.size} {self.num_cols} {self.num_rows} {self._sampling_frequency:f}\n"
        names = "".join(f"{name} {unit} " for name, unit in zip(self._variable_names, self._units)) + "\n"
        try:
            with atomic_output(path) as tmp_path:
                with open(tmp_path, "wb") as f:
                    f.write(header.encode("ascii"))
                    f.write(names.encode("ascii"))
                    f.write(data.astype(_CLMC_DTYPE).tobytes())
        except OSError as e:
            logger.error(f"Could not write CLMC file >{path}<: {e}")
            raise StoreIOError(f"Could not write CLMC file >{path}<: {e}") from e
        logger.info(f"Wrote {self.num_rows} rows x {self.num_cols} columns to CLMC file >{path}<.")

    @classmethod
    def read_from_clmc_file(cls, path: PathLike) -> "CLMCTrajectory":
        """Read a CLMC file written by write_to_clmc_file().

        Raises:
            StoreIOError: If the file is unreadable or malformed
        """
        try:
            with open(path, "rb") as f:
                header = f.readline().decode("ascii").split()
                names = f.readline().decode("ascii").split()
                payload = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StoreIOError(f"Could not read CLMC file >{path}<: {e}") from e

        try:
            count, cols, rows = int(header[0]), int(header[1]), int(header[2])
            frequency = float(header[3])
        except (IndexError, ValueError) as e:
            raise StoreIOError(f"Malformed CLMC header in >{path}<: {header}") from e
        if count != cols * rows or len(names) != 2 * cols:
            raise StoreIOError(f"Inconsistent CLMC header in >{path}<")
        if len(payload) != count * _CLMC_DTYPE.itemsize:
            raise StoreIOError(
                f"CLMC file >{path}< holds {len(payload)} bytes, expected {count * _CLMC_DTYPE.itemsize}"
            )

        trajectory = cls(names[0::2], frequency, units=names[1::2])
        data = np.frombuffer(payload, dtype=_CLMC_DTYPE).astype(np.float64).reshape(rows, cols)
        for row in data:
            trajectory.add(row)
        return trajectory
