"""Artifacts stored in the skill library.

An artifact is a named, typed payload with an identifier that is positive
once persisted. Live motion primitives are reduced to their message form
before they are cached or written.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import numpy as np

from errors import InvalidArgumentError, StoreIOError
from storage.message_codec import to_message

# Id of an artifact that has not been assigned one yet
UNASSIGNED_ID = 0


@runtime_checkable
class MotionPrimitive(Protocol):
    """A live motion primitive that can describe itself as a message."""

    def write_to_message(self) -> Dict[str, Any]:
        ...


@dataclass
class Artifact:
    """A named, typed payload.

    Attributes:
        payload: Message form of the primitive parameters or sample list
        id: Positive identifier once the artifact has been added to a library,
            UNASSIGNED_ID otherwise
        name: Library key; empty until the artifact is added
        type_tag: Version tag of the library the artifact belongs to
    """

    payload: Dict[str, Any]
    id: int = UNASSIGNED_ID
    name: str = ""
    type_tag: str = ""

    def __post_init__(self) -> None:
        if self.id < 0:
            raise InvalidArgumentError(f"Artifact id must be non-negative, got {self.id}")

    @property
    def has_id(self) -> bool:
        return self.id > UNASSIGNED_ID

    def to_message(self) -> Dict[str, Any]:
        """Convert to the message written to disk."""
        return {"name": self.name, "id": self.id, "payload": to_message(self.payload)}

    @classmethod
    def from_message(
        cls,
        message: Dict[str, Any],
        type_tag: str,
        name: Optional[str] = None,
    ) -> "Artifact":
        """Rebuild an artifact from its on-disk message.

        Args:
            message: Message read from a container file
            type_tag: Version tag of the library reading it
            name: Overrides the stored name (the file name is authoritative)

        Raises:
            StoreIOError: If the message lacks a payload
        """
        if "payload" not in message:
            raise StoreIOError("Artifact message has no payload")
        return cls(
            payload=message["payload"],
            id=int(message.get("id", UNASSIGNED_ID)),
            name=name if name is not None else message.get("name", ""),
            type_tag=type_tag,
        )

    @classmethod
    def from_object(cls, obj: Any) -> "Artifact":
        """Wrap an artifact, a plain payload dict or a live object.

        Live objects (anything with write_to_message(), or a dataclass) are
        converted to message form; a positive ``id`` attribute is kept.
        """
        if isinstance(obj, Artifact):
            return obj
        message = to_message(obj)
        if not isinstance(message, dict):
            raise InvalidArgumentError(
                f"Cannot store {type(obj).__name__}: message form must be a mapping"
            )
        return cls(payload=message, id=int(getattr(obj, "id", UNASSIGNED_ID) or UNASSIGNED_ID))


@dataclass
class DMPParameters:
    """Learned parameters of a dynamic movement primitive.

    Attributes:
        weights: Basis function weights, one row per transformation system
        start: Start state per dimension
        goal: Goal state per dimension
        tau: Temporal scaling (movement duration in seconds)
        id: Identifier assigned by the library, 0 if none yet
    """

    weights: np.ndarray
    start: np.ndarray
    goal: np.ndarray
    tau: float = 1.0
    id: int = UNASSIGNED_ID
    variable_names: list = field(default_factory=list)

    def __post_init__(self) -> None:
        self.weights = np.asarray(self.weights, dtype=np.float64)
        self.start = np.asarray(self.start, dtype=np.float64)
        self.goal = np.asarray(self.goal, dtype=np.float64)
        if self.start.shape != self.goal.shape:
            raise InvalidArgumentError(
                f"Start {self.start.shape} and goal {self.goal.shape} must have the same shape"
            )
        if self.tau <= 0.0:
            raise InvalidArgumentError(f"Tau must be positive, got {self.tau}")

    @property
    def num_dimensions(self) -> int:
        return int(self.start.shape[0]) if self.start.ndim else 1

    def write_to_message(self) -> Dict[str, Any]:
        return {
            "weights": self.weights.copy(),
            "start": self.start.copy(),
            "goal": self.goal.copy(),
            "tau": float(self.tau),
            "variable_names": list(self.variable_names),
        }

    @classmethod
    def from_message(cls, message: Dict[str, Any], id: int = UNASSIGNED_ID) -> "DMPParameters":
        return cls(
            weights=message["weights"],
            start=message["start"],
            goal=message["goal"],
            tau=float(message["tau"]),
            id=id,
            variable_names=list(message.get("variable_names", [])),
        )
