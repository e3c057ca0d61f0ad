"""Persistent trial counters and trial sequence verification.

Each (directory, topic) pair owns a counter file holding the number of trials
already committed in that directory:

    {directory}/
        {topic}.counter          # e.g. "3"
        {topic}_trial_0.pt
        {topic}_trial_1.pt
        {topic}_trial_2.pt

The data files are the source of truth. A counter that lags behind the files
(a crash between writing a trial and advancing the counter) is advanced on the
next resolve; a counter that runs ahead of the files is a gap and fails the
completeness check.
"""

import logging
import weakref
from pathlib import Path
from typing import List, Optional, Tuple, Union

from errors import InvalidStateError, StoreIOError
from storage.paths import (
    atomic_write_text,
    get_counter_file_name,
    get_data_file_name,
    get_directory_list,
    topic_file_stem,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def counter_file_path(path: PathLike, topic_name: str) -> Path:
    return Path(path) / get_counter_file_name(topic_name)


def write_counter(path: PathLike, topic_name: str, counter: int) -> None:
    """Persist counter for (path, topic).

    Raises:
        InvalidStateError: If counter is negative
        StoreIOError: If the counter file cannot be written
    """
    if counter < 0:
        raise InvalidStateError(f"Trial counter must be non-negative, got {counter}")
    atomic_write_text(counter_file_path(path, topic_name), f"{counter}\n")


def peek_counter(path: PathLike, topic_name: str) -> Optional[int]:
    """Read the counter for (path, topic) without creating it.

    Returns:
        The counter, or None if (path, topic) has no counter file

    Raises:
        InvalidStateError: If the counter file does not hold a non-negative integer
        StoreIOError: If the counter file cannot be read
    """
    counter_file = counter_file_path(path, topic_name)
    if not counter_file.is_file():
        return None
    try:
        text = counter_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise StoreIOError(f"Could not read trial counter >{counter_file}<: {e}") from e
    try:
        counter = int(text)
    except ValueError as e:
        raise InvalidStateError(f"Trial counter >{counter_file}< is corrupt: {text!r}") from e
    if counter < 0:
        raise InvalidStateError(f"Trial counter >{counter_file}< is negative: {counter}")
    return counter


def read_counter(path: PathLike, topic_name: str) -> int:
    """Read the counter for (path, topic), creating it at 0 if absent.

    Raises:
        InvalidStateError: If the counter file does not hold a non-negative integer
        StoreIOError: If the counter file cannot be read or created
    """
    counter = peek_counter(path, topic_name)
    if counter is None:
        logger.info(f"Creating trial counter file >{counter_file_path(path, topic_name)}<.")
        write_counter(path, topic_name, 0)
        return 0
    return counter


def increment_counter(path: PathLike, topic_name: str) -> int:
    """Advance the counter for (path, topic) by one and return the new value."""
    counter = read_counter(path, topic_name) + 1
    write_counter(path, topic_name, counter)
    logger.debug(f"Incremented trial counter of >{topic_name}< in >{path}< to >{counter}<.")
    return counter


def data_file_path(path: PathLike, topic_name: str, trial: int) -> Path:
    return Path(path) / get_data_file_name(topic_name, trial)


def get_trial_id(path: PathLike, topic_name: str) -> int:
    """Resolve the next trial id for (path, topic).

    Starts from the persisted counter and skips over trials whose data file
    already exists; the counter file is updated if it had to be advanced.

    Returns:
        The id of the next trial to write
    """
    counter = read_counter(path, topic_name)
    trial = counter
    while data_file_path(path, topic_name, trial).exists():
        trial += 1
    if trial != counter:
        logger.warning(
            f"Trial counter of >{topic_name}< in >{path}< was >{counter}< but data for "
            f"trial >{trial - 1}< exists. Advancing counter to >{trial}<."
        )
        write_counter(path, topic_name, trial)
    return trial


def get_missing_trials(path: PathLike, trial: int, topic_name: str) -> List[int]:
    """Return the trials below trial whose data file is absent."""
    return [
        index for index in range(trial)
        if not data_file_path(path, topic_name, index).is_file()
    ]


def check_for_completeness(path: PathLike, trial: int, topic_name: str) -> None:
    """Verify every trial below trial has been written in path.

    Raises:
        InvalidStateError: If any earlier trial is missing its data file
    """
    missing = get_missing_trials(path, trial, topic_name)
    if missing:
        logger.error(
            f"Trial >{trial}< of >{topic_name}< in >{path}< requested but trials {missing} are missing."
        )
        raise InvalidStateError(
            f"Trials {missing} of >{topic_name}< in >{path}< are incomplete; "
            f"refusing to continue at trial >{trial}<"
        )


def get_written_directories(experiment_path: PathLike, topic_name: str) -> List[Path]:
    """Return the experiment folder and its subdirectories that committed a trial of topic.

    A directory counts as written once its counter for topic is positive.
    Counter files are only read, never created.
    """
    experiment = Path(experiment_path)
    candidates = [experiment] + [experiment / name for name in get_directory_list(experiment)]
    return [
        directory for directory in candidates
        if (peek_counter(directory, topic_name) or 0) > 0
    ]


def get_missing_trials_in_experiment(
    experiment_path: PathLike,
    trial: int,
    topic_name: str,
) -> List[Tuple[str, int]]:
    """Return (subdirectory, trial) for every trial below trial missing in a written directory.

    The experiment folder itself is reported as subdirectory "".
    """
    experiment = Path(experiment_path)
    missing = []
    for directory in get_written_directories(experiment, topic_name):
        subdirectory = "" if directory == experiment else directory.name
        missing.extend(
            (subdirectory, index) for index in get_missing_trials(directory, trial, topic_name)
        )
    return missing


def check_for_experiment_completeness(experiment_path: PathLike, trial: int, topic_name: str) -> None:
    """Verify every trial below trial is complete in every written directory of an experiment.

    Raises:
        InvalidStateError: If a written directory is missing an earlier trial
    """
    missing = get_missing_trials_in_experiment(experiment_path, trial, topic_name)
    if missing:
        logger.error(
            f"Trial >{trial}< of >{topic_name}< in >{experiment_path}< requested but "
            f"(subdirectory, trial) {missing} are missing."
        )
        raise InvalidStateError(
            f"Trials {missing} of >{topic_name}< in >{experiment_path}< are incomplete; "
            f"refusing to continue at trial >{trial}<"
        )


class WriterRegistry:
    """In-process single-writer arbitration on (directory, topic file stem) keys.

    A key is held by at most one live owner. Claims are weak, so an owner that
    is garbage collected without releasing its keys frees them. Processes do
    not see each other's claims.
    """

    def __init__(self) -> None:
        self._owners: "weakref.WeakValueDictionary[Tuple[str, str], object]" = (
            weakref.WeakValueDictionary()
        )

    @staticmethod
    def _key(path: PathLike, topic_name: str) -> Tuple[str, str]:
        return str(Path(path).resolve()), topic_file_stem(topic_name)

    def claim(self, path: PathLike, topic_name: str, owner: object) -> None:
        """Claim (path, topic) for owner; claiming a key twice is a no-op.

        Raises:
            InvalidStateError: If another live owner holds the key
        """
        key = self._key(path, topic_name)
        current = self._owners.get(key)
        if current is not None and current is not owner:
            raise InvalidStateError(
                f"Topic >{topic_name}< in >{key[0]}< is already being written by another recorder"
            )
        self._owners[key] = owner

    def release(self, path: PathLike, topic_name: str, owner: object) -> None:
        key = self._key(path, topic_name)
        if self._owners.get(key) is owner:
            del self._owners[key]

    def release_all(self, owner: object) -> None:
        for key in [key for key, value in self._owners.items() if value is owner]:
            del self._owners[key]

    def owner_of(self, path: PathLike, topic_name: str) -> object:
        return self._owners.get(self._key(path, topic_name))


writer_registry = WriterRegistry()
