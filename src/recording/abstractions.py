"""Recording data types.

Defines the experiment description, the recorded samples and the per-topic
buffer they are collected in, plus the mapping from a description to the
name of its experiment folder.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Sequence

import numpy as np

from errors import InvalidArgumentError

_INVALID_NAME_CHARS = set('<>:"/\\|?*')


@dataclass
class Description:
    """Structured experiment label plus the current trial.

    Attributes:
        description: Human-readable experiment label (part of the folder name)
        id: Numeric variant of the experiment (part of the folder name)
        trial: Trial number; resolved and advanced by the recorder
    """

    description: str
    id: int = 0
    trial: int = 0

    def __post_init__(self) -> None:
        """Validate the label is usable as a directory name."""
        if not self.description.strip():
            raise InvalidArgumentError("Description cannot be empty or whitespace")
        if any(char in self.description for char in _INVALID_NAME_CHARS):
            raise InvalidArgumentError(
                f"Description contains invalid characters: {self.description}"
            )
        if self.id < 0:
            raise InvalidArgumentError(f"Description id must be non-negative, got {self.id}")
        if self.trial < 0:
            raise InvalidArgumentError(f"Trial must be non-negative, got {self.trial}")


def get_file_name(description: Description) -> str:
    """Return the experiment folder name of a description, e.g. "reach_2"."""
    return f"{description.description}_{description.id}"


@dataclass
class DataSample:
    """One time-stamped sample of named channels.

    Attributes:
        stamp: Sample time in seconds
        names: Channel names
        data: Channel values, one per name
    """

    stamp: float
    names: List[str] = field(default_factory=list)
    data: List[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.stamp = float(self.stamp)
        self.names = list(self.names)
        self.data = [float(value) for value in np.asarray(self.data, dtype=np.float64).ravel()]

    def to_message(self) -> Dict[str, Any]:
        return {"names": list(self.names), "data": np.asarray(self.data, dtype=np.float64)}

    @classmethod
    def from_message(cls, stamp: float, message: Dict[str, Any]) -> "DataSample":
        return cls(stamp=stamp, names=message.get("names", []), data=message.get("data", []))


class SampleBuffer:
    """Ordered, append-only sequence of samples collected for one trial.

    Writers only read the buffer. Clearing it between trials is the caller's
    responsibility.
    """

    def __init__(self, samples: Iterable[DataSample] = ()) -> None:
        self._samples: List[DataSample] = list(samples)

    def append(self, sample: DataSample) -> None:
        self._samples.append(sample)

    def extend(self, samples: Iterable[DataSample]) -> None:
        self._samples.extend(samples)

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[DataSample]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> DataSample:
        return self._samples[index]

    def is_empty(self) -> bool:
        return not self._samples

    @property
    def samples(self) -> Sequence[DataSample]:
        """Return a read-only view of the samples."""
        return tuple(self._samples)

    @property
    def duration(self) -> float:
        """Time between first and last sample (0.0 for fewer than two)."""
        if len(self._samples) < 2:
            return 0.0
        return self._samples[-1].stamp - self._samples[0].stamp
