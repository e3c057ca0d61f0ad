"""Skill library: a name-indexed artifact cache backed by a directory.

Directory structure:
    {root_directory}/{version_tag}/
        {name}.pt        # one container file per artifact

The cache is filled by reload() at initialization and lazily by get_dmp()
when a file appears on disk after the last reload. Identifiers are positive,
assigned once, and never change when an artifact is overwritten.
"""

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from constants import ARTIFACT_FILE_ENDING
from errors import (
    ArtifactNotFoundError,
    InvalidArgumentError,
    PreconditionFailedError,
    StoreIOError,
)
from library.abstractions import UNASSIGNED_ID, Artifact, MotionPrimitive
from storage import serializer
from storage.message_codec import describe_message
from storage.paths import check_and_create_directories, get_name_from_filename, is_temporary_file

logger = logging.getLogger(__name__)


def _check_name(name: str) -> None:
    """Reject names that are empty or would resolve outside the library directory."""
    if not name or name in (".", "..") or any(sep in name for sep in ("/", "\\")):
        raise InvalidArgumentError(f"Invalid DMP name >{name}<")


class LibraryState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class DMPLibrary:
    """Cache of named motion-primitive artifacts persisted under one version tag.

    Usage:
        library = DMPLibrary("dmp_v1")
        library.initialize("skill_library")
        library.add_dmp(DMPParameters(...), "grasp")
        artifact = library.get_dmp("grasp")
    """

    def __init__(self, version_tag: str) -> None:
        """Initialize an empty library.

        Args:
            version_tag: Type tag of the stored artifacts; also the name of
                the subdirectory they are stored in
        """
        if not version_tag:
            raise InvalidArgumentError("Version tag must not be empty")
        self._version_tag = version_tag
        self._state = LibraryState.UNINITIALIZED
        self._library_path = Path()
        self._cache: Dict[str, Artifact] = {}
        self._max_id = UNASSIGNED_ID

    @property
    def version_tag(self) -> str:
        """Return the version tag of the stored artifacts."""
        return self._version_tag

    @property
    def library_path(self) -> Path:
        """Return the directory holding the artifact files."""
        return self._library_path

    @property
    def state(self) -> LibraryState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is LibraryState.READY

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, name: object) -> bool:
        return name in self._cache

    def names(self) -> List[str]:
        """Return the cached artifact names, sorted."""
        self._ensure_initialized()
        return sorted(self._cache)

    def _ensure_initialized(self) -> None:
        if self._state is not LibraryState.READY:
            raise PreconditionFailedError(
                "DMP library is not initialized. Call initialize() first."
            )

    def initialize(self, root_directory_name: str) -> None:
        """Create the library directory and load every artifact it holds.

        Args:
            root_directory_name: Directory the version-tagged library lives in

        Raises:
            StoreIOError: If the directory cannot be created or reload fails
        """
        self._library_path = Path(root_directory_name) / self._version_tag
        logger.info(f"Initializing DMP library with path >{self._library_path}<.")
        check_and_create_directories(self._library_path)
        self._state = LibraryState.UNINITIALIZED
        self._reload()
        self._state = LibraryState.READY

    def get_bag_file_name(self, name: str) -> Path:
        """Return the absolute path of the file storing the named artifact.

        Raises:
            InvalidArgumentError: If name would leave the library directory
        """
        _check_name(name)
        return self._library_path.absolute() / f"{name}{ARTIFACT_FILE_ENDING}"

    def _list_files(self) -> List[Path]:
        try:
            entries = list(self._library_path.iterdir())
        except OSError as e:
            raise StoreIOError(f"Could not list library directory >{self._library_path}<: {e}") from e
        return [entry for entry in entries if entry.is_file() and not is_temporary_file(entry)]

    def reload(self) -> None:
        """Load all artifacts from disk into the cache.

        Files are processed in ascending filename order so that artifacts
        without a stored id receive ids deterministically. The first failure
        aborts the reload; artifacts added before it stay cached.

        Raises:
            PreconditionFailedError: If the library is not initialized
            StoreIOError: If a file cannot be read
        """
        self._ensure_initialized()
        self._reload()

    def _reload(self) -> None:
        filenames = sorted(str(path) for path in self._list_files())
        loaded: List[Tuple[str, Artifact]] = []
        failure = None
        for filename in filenames:
            name = get_name_from_filename(filename)
            try:
                message = serializer.read_from_file(self._version_tag, filename, strict=False)
                loaded.append((name, Artifact.from_message(message, self._version_tag, name=name)))
            except (StoreIOError, InvalidArgumentError) as e:
                logger.error(f"Problems reading >{filename}<. Cannot reload DMP library from disc.")
                failure = e
                break

        # Stored ids must be known before id-less files are numbered
        self._max_id = max([self._max_id] + [artifact.id for _, artifact in loaded])
        for name, artifact in loaded:
            self._add(artifact, name)

        if failure is not None:
            raise StoreIOError(
                f"Cannot reload DMP library from >{self._library_path}<: {failure}"
            ) from failure
        logger.info(f"Reloaded {len(filenames)} artifacts from >{self._library_path}<.")

    def add(self, artifact: Artifact, name: str) -> bool:
        """Insert or overwrite the named artifact in the cache.

        An existing entry keeps its id and only its payload is replaced. A new
        entry keeps a positive incoming id, otherwise it is given the next id.
        The id is also written back onto the given artifact.

        Args:
            artifact: Artifact to cache
            name: Library key

        Returns:
            True

        Raises:
            PreconditionFailedError: If the library is not initialized
            InvalidArgumentError: If name is empty or not a plain file name
        """
        self._ensure_initialized()
        _check_name(name)
        return self._add(artifact, name)

    def _add(self, artifact: Artifact, name: str) -> bool:
        existing = self._cache.get(name)
        if existing is not None:
            logger.info(f"Overwriting DMP >{name}<, but not changing id >{existing.id}<.")
            artifact.id = existing.id
        elif artifact.has_id:
            logger.info(f"Adding DMP >{name}< and not changing id >{artifact.id}<.")
        else:
            new_id = self._max_id + 1
            logger.info(f"Adding DMP >{name}< and changing id from >{artifact.id}< to >{new_id}<.")
            artifact.id = new_id

        self._max_id = max(self._max_id, artifact.id)
        self._cache[name] = replace(artifact, name=name, type_tag=self._version_tag)
        logger.debug(f"Cached >{name}<: {describe_message(artifact.payload)}")
        return True

    def get(self, name: str) -> Artifact:
        """Look the named artifact up in the cache only.

        Raises:
            ArtifactNotFoundError: If the name is not cached
        """
        self._ensure_initialized()
        artifact = self._cache.get(name)
        if artifact is None:
            raise ArtifactNotFoundError(f"DMP >{name}< is not cached")
        logger.info(f"Found DMP >{name}< with id >{artifact.id}<.")
        return replace(artifact)

    def get_dmp(self, name: str) -> Artifact:
        """Return the named artifact from the cache, falling back to disk.

        A file found on disk is added to the cache; failing to cache it is
        only logged.

        Raises:
            ArtifactNotFoundError: If the artifact is neither cached nor on disk
            StoreIOError: If the file exists but cannot be read
        """
        self._ensure_initialized()
        if name in self._cache:
            return self.get(name)

        filename = self.get_bag_file_name(name)
        for path in self._list_files():
            logger.debug(f"Checking: >{path.absolute()}< and >{filename}<.")
            if path.absolute() != filename:
                continue
            try:
                message = serializer.read_from_file(self._version_tag, filename, strict=False)
                artifact = Artifact.from_message(message, self._version_tag, name=name)
            except StoreIOError:
                logger.error(f"Problems reading >{filename}<. Cannot return DMP.")
                raise
            if not self._add(artifact, name):
                logger.warning(f"Could not add DMP >{name}< to local cache. Returning it anyway.")
            return replace(artifact, name=name, type_tag=self._version_tag)

        logger.error(f"Could not find DMP with name >{name}<.")
        raise ArtifactNotFoundError(f"Could not find DMP with name >{name}<")

    def add_dmp(self, dmp: Union[Artifact, MotionPrimitive, Dict[str, Any]], name: str) -> bool:
        """Add an artifact to the library and write it to disk.

        Live objects are converted to message form first. The file at the
        artifact's deterministic path is replaced atomically.

        Args:
            dmp: An Artifact, a live motion primitive or a payload dict
            name: Library key

        Returns:
            True

        Raises:
            InvalidArgumentError: If name is empty or not a plain file name
            StoreIOError: If the file cannot be written
        """
        self._ensure_initialized()
        if not name:
            logger.error("Cannot add DMP without name. Name must be specified.")
            raise InvalidArgumentError("Cannot add DMP without name")

        filename = self.get_bag_file_name(name)
        artifact = Artifact.from_object(dmp)
        self._add(artifact, name)
        logger.debug(f"Writing into DMP Library at >{filename}<.")
        serializer.write_to_file(self._cache[name].to_message(), self._version_tag, filename)
        return True

    def describe(self) -> List[Tuple[int, str, int]]:
        """Return (index, name, id) for every cached artifact, sorted by name."""
        self._ensure_initialized()
        return [
            (index, name, self._cache[name].id)
            for index, name in enumerate(sorted(self._cache), start=1)
        ]

    def print_contents(self) -> List[Tuple[int, str, int]]:
        """Log the cache contents and return them as describe() does."""
        entries = self.describe()
        if not entries:
            logger.info("Library buffer is empty.")
        else:
            logger.info("Library buffer contains:")
        for index, name, artifact_id in entries:
            logger.info(f"({index}) >{name}< has id >{artifact_id}<.")
        return entries
