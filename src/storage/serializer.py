"""Container file IO for artifacts and recorded samples.

Each container file holds either one typed record or an ordered list of
time-stamped records, tagged with a type string:

    {"type": <type tag>, "kind": "record",  "message": {...}}
    {"type": <type tag>, "kind": "records", "records": [{"stamp": t, "message": {...}}, ...]}

Files are written with torch.save through a temporary file and loaded with
weights_only=True, so only tensors, containers and primitives ever cross the
boundary. numpy arrays are stored as tensors and come back as numpy arrays.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

import numpy as np
import torch as T

from errors import InvalidArgumentError, StoreIOError
from storage.paths import atomic_output

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
StampedMessage = Tuple[float, Dict[str, Any]]

RECORD_KIND = "record"
RECORDS_KIND = "records"


def _encode(value: Any) -> Any:
    """Replace numpy arrays by tensors, recursively."""
    if isinstance(value, np.ndarray):
        if value.dtype == object:
            raise InvalidArgumentError("Object arrays cannot be serialized")
        return T.from_numpy(np.ascontiguousarray(value))
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _decode(value: Any) -> Any:
    """Replace tensors by numpy arrays, recursively."""
    if isinstance(value, T.Tensor):
        return value.numpy()
    if isinstance(value, dict):
        return {key: _decode(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_decode(item) for item in value]
    return value


def _save(container: Dict[str, Any], path: PathLike) -> None:
    try:
        with atomic_output(path) as tmp_path:
            T.save(container, tmp_path)
    except (OSError, RuntimeError) as e:
        logger.error(f"Problems writing >{path}<: {e}")
        raise StoreIOError(f"Problems writing >{path}<: {e}") from e


def _load(path: PathLike, type_tag: str, kind: str, strict: bool) -> Dict[str, Any]:
    try:
        container = T.load(path, map_location="cpu", weights_only=True)
    except Exception as e:
        # torch raises a variety of types for truncated or foreign files
        logger.error(f"Problems reading >{path}<: {e}")
        raise StoreIOError(f"Problems reading >{path}<: {e}") from e

    if not isinstance(container, dict) or "type" not in container or "kind" not in container:
        raise StoreIOError(f">{path}< is not a container file")
    if container["kind"] != kind:
        raise StoreIOError(
            f">{path}< holds {container['kind']!r}, expected {kind!r}"
        )
    if container["type"] != type_tag:
        if strict:
            raise StoreIOError(
                f">{path}< has type >{container['type']}<, expected >{type_tag}<"
            )
        logger.debug(
            f"Type >{container['type']}< of >{path}< does not match >{type_tag}<, reading anyway."
        )
    return container


def write_to_file(message: Dict[str, Any], type_tag: str, path: PathLike) -> None:
    """Write one typed record to path, replacing any previous file.

    Raises:
        StoreIOError: If the file cannot be written
        InvalidArgumentError: If the message holds unserializable values
    """
    _save({"type": type_tag, "kind": RECORD_KIND, "message": _encode(message)}, path)
    logger.debug(f"Wrote record of type >{type_tag}< to >{path}<.")


def read_from_file(type_tag: str, path: PathLike, strict: bool = False) -> Dict[str, Any]:
    """Read one typed record from path.

    Args:
        type_tag: Expected type tag
        path: Container file to read
        strict: If True, a type tag mismatch is an error

    Returns:
        The stored message

    Raises:
        StoreIOError: If the file is unreadable, not a single-record container,
            or (strict only) carries another type tag
    """
    container = _load(path, type_tag, RECORD_KIND, strict)
    return _decode(container["message"])


def write_to_file_with_time_stamps(
    records: Sequence[StampedMessage],
    type_tag: str,
    path: PathLike,
) -> None:
    """Write an ordered list of (stamp, message) pairs to path.

    Raises:
        StoreIOError: If the file cannot be written
    """
    encoded = [
        {"stamp": float(stamp), "message": _encode(message)}
        for stamp, message in records
    ]
    _save({"type": type_tag, "kind": RECORDS_KIND, "records": encoded}, path)
    logger.debug(f"Wrote {len(encoded)} records of type >{type_tag}< to >{path}<.")


def read_from_file_with_time_stamps(
    type_tag: str,
    path: PathLike,
    strict: bool = False,
) -> List[StampedMessage]:
    """Read an ordered list of (stamp, message) pairs from path.

    Raises:
        StoreIOError: If the file is unreadable or not a record-list container
    """
    container = _load(path, type_tag, RECORDS_KIND, strict)
    return [
        (float(record["stamp"]), _decode(record["message"]))
        for record in container["records"]
    ]
