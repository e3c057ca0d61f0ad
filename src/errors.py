"""Error taxonomy shared by the skill library and the task recorder IO.

Every failure crossing a component boundary is one of five kinds. The kind is
available as ``error.kind`` so callers can branch on it without matching on
message text.
"""

from enum import Enum


class ErrorKind(Enum):
    """Flat classification of store failures."""

    IO_ERROR = "IOError"
    NOT_FOUND = "NotFound"
    INVALID_ARGUMENT = "InvalidArgument"
    PRECONDITION_FAILED = "PreconditionFailed"
    INVALID_STATE = "InvalidState"


class ArtifactStoreError(Exception):
    """Base exception for all store errors."""

    kind: ErrorKind = ErrorKind.IO_ERROR


class StoreIOError(ArtifactStoreError):
    """Raised when a file or directory cannot be created, read or written."""

    kind = ErrorKind.IO_ERROR


class ArtifactNotFoundError(ArtifactStoreError):
    """Raised when a named artifact is neither cached nor on disk."""

    kind = ErrorKind.NOT_FOUND


class InvalidArgumentError(ArtifactStoreError):
    """Raised when a caller passes an unusable argument (e.g. an empty name)."""

    kind = ErrorKind.INVALID_ARGUMENT


class ConfigurationError(InvalidArgumentError):
    """Raised when a required configuration parameter is missing or ill-typed."""

    pass


class PreconditionFailedError(ArtifactStoreError):
    """Raised when an operation is called in the wrong lifecycle state."""

    kind = ErrorKind.PRECONDITION_FAILED


class InvalidStateError(ArtifactStoreError):
    """Raised when on-disk or in-memory state violates an invariant."""

    kind = ErrorKind.INVALID_STATE
