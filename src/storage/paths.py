"""Naming and directory helpers shared by the library and the recorder.

All file names are deterministic functions of a topic and trial id or of an
artifact name; nothing here depends on the clock or on randomness.
"""

import logging
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Union

from constants import (
    CLMC_FILE_ENDING,
    COUNTER_FILE_ENDING,
    DATA_FILE_ENDING,
    TEMPORARY_FILE_ENDING,
    TRIAL_SEPARATOR,
)
from errors import InvalidArgumentError, StoreIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SLASH = "/"
TOPIC_STEM_SEPARATOR = "."

_TOPIC_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_/]+$")


# =============================================================================
# Topic names
# =============================================================================

def remove_leading_slash(name: str) -> str:
    return name[len(SLASH):] if name.startswith(SLASH) else name


def append_leading_slash(name: str) -> str:
    return name if name.startswith(SLASH) else SLASH + name


def normalize_topic_name(topic_name: str, prefix: str = "") -> str:
    """Return the prefixed topic name with exactly one leading slash.

    Example:
        normalize_topic_name("/joint_states", "left_") -> "/left_joint_states"
    """
    return append_leading_slash(prefix + remove_leading_slash(topic_name))


def topic_file_stem(topic_name: str) -> str:
    """Map a topic name onto a flat file name stem ("/arm/joint_states" -> "arm.joint_states").

    Topic names are restricted to letters, digits, "_" and "/", so replacing
    "/" by "." keeps distinct topics on distinct files.

    Raises:
        InvalidArgumentError: If the topic is empty or holds other characters
    """
    name = remove_leading_slash(topic_name)
    if not _TOPIC_NAME_PATTERN.match(name):
        raise InvalidArgumentError(
            f"Topic name >{topic_name}< must be non-empty and contain only letters, digits, '_' and '/'"
        )
    return name.replace(SLASH, TOPIC_STEM_SEPARATOR)


def topic_from_file_stem(stem: str) -> str:
    """Inverse of topic_file_stem ("arm.joint_states" -> "/arm/joint_states")."""
    return append_leading_slash(stem.replace(TOPIC_STEM_SEPARATOR, SLASH))


# =============================================================================
# File names
# =============================================================================

def get_data_file_name(topic_name: str, trial: int) -> str:
    """Return the data file name of a trial, e.g. "joint_states_trial_3.pt"."""
    if trial < 0:
        raise InvalidArgumentError(f"Trial must be non-negative, got {trial}")
    return f"{topic_file_stem(topic_name)}{TRIAL_SEPARATOR}{trial}{DATA_FILE_ENDING}"


def get_clmc_file_name(topic_name: str, trial: int) -> str:
    """Return the CLMC export file name of a trial."""
    if trial < 0:
        raise InvalidArgumentError(f"Trial must be non-negative, got {trial}")
    return f"{topic_file_stem(topic_name)}{TRIAL_SEPARATOR}{trial}{CLMC_FILE_ENDING}"


def get_counter_file_name(topic_name: str) -> str:
    return f"{topic_file_stem(topic_name)}{COUNTER_FILE_ENDING}"


def get_name_from_filename(filename: PathLike) -> str:
    """Strip directory and extension from a filename."""
    return Path(filename).stem


def is_temporary_file(path: PathLike) -> bool:
    return str(path).endswith(TEMPORARY_FILE_ENDING)


# =============================================================================
# Directories
# =============================================================================

def check_and_create_directories(path: PathLike) -> Path:
    """Create path and all missing parents.

    Raises:
        StoreIOError: If the directory cannot be created
    """
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Directory >{directory}< could not be created: {e}")
        raise StoreIOError(f"Directory >{directory}< could not be created: {e}") from e
    return directory


def check_for_directory(path: PathLike) -> Path:
    """Ensure path is a directory, creating it (but not its parents) if absent.

    Raises:
        StoreIOError: If path exists but is not a directory, or cannot be created
    """
    directory = Path(path)
    if directory.exists():
        if not directory.is_dir():
            raise StoreIOError(f">{directory}< exists but is not a directory")
        return directory
    try:
        directory.mkdir()
    except OSError as e:
        logger.error(f"Could not create directory >{directory}<: {e}")
        raise StoreIOError(f"Could not create directory >{directory}<: {e}") from e
    logger.debug(f"Created directory >{directory}<.")
    return directory


def get_directory_list(path: PathLike) -> List[str]:
    """Return the names of the immediate subdirectories of path, sorted.

    Symlinks are skipped so that convenience links never show up twice.

    Raises:
        StoreIOError: If path cannot be listed
    """
    directory = Path(path)
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise StoreIOError(f"Could not list directory >{directory}<: {e}") from e
    return sorted(
        entry.name for entry in entries
        if entry.is_dir() and not entry.is_symlink()
    )


# =============================================================================
# Atomic writes
# =============================================================================

@contextmanager
def atomic_output(path: PathLike) -> Iterator[Path]:
    """Yield a temporary sibling path that replaces path on success.

    The temporary file lives in the same directory so os.replace stays on
    one filesystem. On any failure the temporary file is removed and the
    previous content of path is left untouched.

    Usage:
        with atomic_output(target) as tmp_path:
            T.save(payload, tmp_path)
    """
    target = Path(path)
    tmp_path = target.with_name(target.name + TEMPORARY_FILE_ENDING)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def atomic_write_text(path: PathLike, text: str) -> None:
    """Write text to path through a temporary file.

    Raises:
        StoreIOError: If the file cannot be written
    """
    try:
        with atomic_output(path) as tmp_path:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
    except OSError as e:
        raise StoreIOError(f"Could not write >{path}<: {e}") from e
