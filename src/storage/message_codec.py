"""Conversion of live objects into plain message form.

A message is built from dicts, lists, numpy arrays and primitives only, which
is what storage.serializer knows how to write.
"""

import dataclasses
from typing import Any, Dict

import numpy as np


def to_message(obj: Any) -> Any:
    """Recursively convert an object to its message representation.

    Handles:
    - Objects exposing write_to_message() (live motion primitives)
    - Dataclasses (recursively converted, frozen or not)
    - Tuples (converted to lists)
    - numpy arrays (copied) and numpy scalars (unwrapped)
    - Primitive types (passed through)

    Args:
        obj: Object to convert

    Returns:
        Message representation of obj
    """
    write_to_message = getattr(obj, "write_to_message", None)
    if callable(write_to_message) and not isinstance(obj, type):
        return to_message(write_to_message())

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result = {}
        for field in dataclasses.fields(obj):
            result[field.name] = to_message(getattr(obj, field.name))
        return result

    elif isinstance(obj, (tuple, list)):
        return [to_message(item) for item in obj]

    elif isinstance(obj, dict):
        return {key: to_message(value) for key, value in obj.items()}

    elif isinstance(obj, np.ndarray):
        return obj.copy()

    elif isinstance(obj, np.generic):
        return obj.item()

    else:
        return obj


def messages_equal(a: Any, b: Any) -> bool:
    """Structural equality that understands numpy arrays."""
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return (
            isinstance(a, np.ndarray)
            and isinstance(b, np.ndarray)
            and a.shape == b.shape
            and bool(np.array_equal(a, b))
        )
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(messages_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(messages_equal(x, y) for x, y in zip(a, b))
    return a == b


def describe_message(message: Dict[str, Any]) -> str:
    """Return a short one-line summary of a message's top-level fields."""
    parts = []
    for key, value in message.items():
        if isinstance(value, np.ndarray):
            parts.append(f"{key}=array{tuple(value.shape)}")
        elif isinstance(value, (list, dict)):
            parts.append(f"{key}=<{type(value).__name__}:{len(value)}>")
        else:
            parts.append(f"{key}={value!r}")
    return ", ".join(parts)
