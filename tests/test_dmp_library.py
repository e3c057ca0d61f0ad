"""Tests for the skill library (DMPLibrary).

Covers:
- Id assignment and id stability on overwrite
- Reload order and partial state on failure
- Cache-only lookup vs. disk fallback
- Lifecycle preconditions
"""

from pathlib import Path

import numpy as np
import pytest

from errors import (
    ArtifactNotFoundError,
    ErrorKind,
    InvalidArgumentError,
    PreconditionFailedError,
    StoreIOError,
)
from library.abstractions import Artifact, DMPParameters
from library.dmp_library import DMPLibrary, LibraryState
from storage import serializer

VERSION_TAG = "dmp_v1"


@pytest.fixture
def library(temp_dir):
    """Create an initialized, empty library."""
    lib = DMPLibrary(VERSION_TAG)
    lib.initialize(temp_dir)
    return lib


def write_raw_artifact(directory: Path, name: str, payload: dict, artifact_id: int = 0) -> None:
    """Write an artifact file directly, bypassing the library."""
    directory.mkdir(parents=True, exist_ok=True)
    message = {"name": name, "id": artifact_id, "payload": payload}
    serializer.write_to_file(message, VERSION_TAG, directory / f"{name}.pt")


class TestInitialize:
    """Tests for DMPLibrary.initialize()."""

    def test_creates_version_tagged_directory(self, temp_dir):
        """The library lives in a subdirectory named after the version tag."""
        lib = DMPLibrary(VERSION_TAG)
        lib.initialize(str(Path(temp_dir) / "nested" / "root"))

        assert lib.library_path == Path(temp_dir) / "nested" / "root" / VERSION_TAG
        assert lib.library_path.is_dir()
        assert lib.state is LibraryState.READY
        assert len(lib) == 0

    def test_unwritable_root_fails(self, temp_dir):
        """A root that cannot be created is an IOError."""
        blocker = Path(temp_dir) / "file"
        blocker.write_text("not a directory")

        lib = DMPLibrary(VERSION_TAG)
        with pytest.raises(StoreIOError) as excinfo:
            lib.initialize(str(blocker))
        assert excinfo.value.kind is ErrorKind.IO_ERROR
        assert not lib.is_initialized

    def test_empty_version_tag_rejected(self):
        with pytest.raises(InvalidArgumentError):
            DMPLibrary("")

    def test_operations_require_initialize(self, dmp_factory):
        """Every public operation fails before initialize()."""
        lib = DMPLibrary(VERSION_TAG)
        with pytest.raises(PreconditionFailedError):
            lib.get("grasp")
        with pytest.raises(PreconditionFailedError):
            lib.add(Artifact(payload={}), "grasp")
        with pytest.raises(PreconditionFailedError):
            lib.names()
        with pytest.raises(PreconditionFailedError):
            lib.describe()
        with pytest.raises(PreconditionFailedError):
            lib.print_contents()
        with pytest.raises(PreconditionFailedError):
            lib.get_dmp("grasp")
        with pytest.raises(PreconditionFailedError):
            lib.add_dmp(dmp_factory(1.0), "grasp")
        with pytest.raises(PreconditionFailedError) as excinfo:
            lib.reload()
        assert excinfo.value.kind is ErrorKind.PRECONDITION_FAILED

    def test_add_before_initialize_leaves_no_state(self, temp_dir):
        """A rejected early add does not leak into the ids assigned by reload."""
        write_raw_artifact(Path(temp_dir) / VERSION_TAG, "alpha", {"value": 1})

        lib = DMPLibrary(VERSION_TAG)
        with pytest.raises(PreconditionFailedError):
            lib.add(Artifact(payload={}, id=9), "grasp")
        lib.initialize(temp_dir)

        assert lib.names() == ["alpha"]
        assert lib.get("alpha").id == 1


class TestAdd:
    """Tests for DMPLibrary.add() and get()."""

    def test_distinct_names_get_unique_positive_ids(self, library):
        names = ["a", "b", "c", "d", "e"]
        for name in names:
            assert library.add(Artifact(payload={"value": name}), name) is True

        ids = [library.get(name).id for name in names]
        assert all(i > 0 for i in ids)
        assert len(set(ids)) == len(ids)

    def test_overwrite_keeps_id(self, library):
        """Overwriting replaces the payload but never the id."""
        library.add(Artifact(payload={"value": 1}), "grasp")
        library.add(Artifact(payload={"value": 2}), "reach")
        original_id = library.get("grasp").id

        library.add(Artifact(payload={"value": 3}, id=42), "grasp")

        stored = library.get("grasp")
        assert stored.payload == {"value": 3}
        assert stored.id == original_id

    def test_positive_incoming_id_is_kept(self, library):
        library.add(Artifact(payload={}, id=7), "grasp")
        assert library.get("grasp").id == 7

        # Later id-less artifacts continue above the largest id seen
        library.add(Artifact(payload={}), "reach")
        assert library.get("reach").id == 8

    def test_add_writes_id_back(self, library):
        artifact = Artifact(payload={"value": 1})
        library.add(artifact, "grasp")
        assert artifact.id == 1

    def test_get_returns_copy(self, library):
        library.add(Artifact(payload={"value": 1}), "grasp")
        fetched = library.get("grasp")
        fetched.id = 99
        assert library.get("grasp").id == 1

    def test_get_missing_is_not_found(self, library):
        with pytest.raises(ArtifactNotFoundError) as excinfo:
            library.get("missing")
        assert excinfo.value.kind is ErrorKind.NOT_FOUND


class TestAddDMP:
    """Tests for DMPLibrary.add_dmp()."""

    def test_empty_name_rejected(self, library, dmp_factory):
        with pytest.raises(InvalidArgumentError) as excinfo:
            library.add_dmp(dmp_factory(1.0), "")
        assert excinfo.value.kind is ErrorKind.INVALID_ARGUMENT
        assert len(library) == 0

    def test_live_object_written_to_disk(self, library, dmp_factory):
        """Live primitives are converted to messages and persisted."""
        assert library.add_dmp(dmp_factory(2.0), "grasp") is True

        path = library.get_bag_file_name("grasp")
        assert path.is_file()
        assert path.name == "grasp.pt"

        message = serializer.read_from_file(VERSION_TAG, path, strict=True)
        assert message["id"] == 1
        assert message["name"] == "grasp"
        np.testing.assert_array_equal(message["payload"]["goal"], [2.0, 2.0])

    @pytest.mark.parametrize("name", ["../escape", "nested/grasp", "..", ".", "back\\slash"])
    def test_names_leaving_library_rejected(self, library, dmp_factory, temp_dir, name):
        with pytest.raises(InvalidArgumentError):
            library.add_dmp(dmp_factory(1.0), name)
        with pytest.raises(InvalidArgumentError):
            library.add(Artifact(payload={}), name)
        with pytest.raises(InvalidArgumentError):
            library.get_bag_file_name(name)

        assert len(library) == 0
        assert list(Path(temp_dir).rglob("*.pt")) == []

    def test_payload_dict_accepted(self, library):
        library.add_dmp({"tau": 0.5}, "reach")
        assert library.get("reach").payload == {"tau": 0.5}

    def test_overwrite_leaves_no_temporary_files(self, library, dmp_factory):
        library.add_dmp(dmp_factory(1.0), "grasp")
        library.add_dmp(dmp_factory(2.0), "grasp")

        files = sorted(p.name for p in library.library_path.iterdir())
        assert files == ["grasp.pt"]

    def test_payload_round_trips_as_dmp_parameters(self, library, dmp_factory):
        library.add_dmp(dmp_factory(3.0), "grasp")
        artifact = library.get("grasp")
        dmp = DMPParameters.from_message(artifact.payload, id=artifact.id)
        assert dmp.tau == 3.0
        assert dmp.num_dimensions == 2
        assert dmp.id == 1


class TestReload:
    """Tests for DMPLibrary.reload()."""

    def test_ids_follow_sorted_filenames(self, temp_dir):
        """Files without ids are numbered in ascending filename order."""
        directory = Path(temp_dir) / VERSION_TAG
        for name in ["charlie", "alpha", "bravo"]:
            write_raw_artifact(directory, name, {"value": name})

        lib = DMPLibrary(VERSION_TAG)
        lib.initialize(temp_dir)

        assert lib.get("alpha").id == 1
        assert lib.get("bravo").id == 2
        assert lib.get("charlie").id == 3

    def test_stored_ids_are_not_reused(self, temp_dir):
        """An id-less file never receives an id already stored in another file."""
        directory = Path(temp_dir) / VERSION_TAG
        write_raw_artifact(directory, "alpha", {"value": 1})
        write_raw_artifact(directory, "bravo", {"value": 2}, artifact_id=1)

        lib = DMPLibrary(VERSION_TAG)
        lib.initialize(temp_dir)

        assert lib.get("bravo").id == 1
        assert lib.get("alpha").id == 2

    def test_name_derived_from_filename(self, temp_dir):
        directory = Path(temp_dir) / VERSION_TAG
        write_raw_artifact(directory, "grasp", {"value": 1})
        (directory / "grasp.pt").rename(directory / "renamed.pt")

        lib = DMPLibrary(VERSION_TAG)
        lib.initialize(temp_dir)
        assert lib.names() == ["renamed"]

    def test_failure_leaves_partial_state(self, temp_dir):
        """The first unreadable file aborts reload without rolling back."""
        directory = Path(temp_dir) / VERSION_TAG
        write_raw_artifact(directory, "alpha", {"value": 1})
        (directory / "bravo.pt").write_bytes(b"not a container")
        write_raw_artifact(directory, "charlie", {"value": 3})

        lib = DMPLibrary(VERSION_TAG)
        with pytest.raises(StoreIOError):
            lib.initialize(temp_dir)

        assert "alpha" in lib
        assert "charlie" not in lib
        assert not lib.is_initialized


class TestGetDMP:
    """Tests for DMPLibrary.get_dmp()."""

    def test_absent_everywhere_is_not_found(self, library):
        library.add(Artifact(payload={"value": 1}), "grasp")

        with pytest.raises(ArtifactNotFoundError):
            library.get_dmp("missing")
        assert library.names() == ["grasp"]

    def test_disk_fallback_populates_cache(self, library):
        """A file written after reload is found on disk and cached."""
        write_raw_artifact(library.library_path, "reach", {"value": 5}, artifact_id=4)
        assert "reach" not in library

        artifact = library.get_dmp("reach")

        assert artifact.payload == {"value": 5}
        assert artifact.id == 4
        assert "reach" in library
        assert library.get("reach").id == 4

    def test_cache_hit_does_not_touch_disk(self, library, dmp_factory):
        library.add_dmp(dmp_factory(1.0), "grasp")
        library.get_bag_file_name("grasp").unlink()

        assert library.get_dmp("grasp").id == 1

    def test_unreadable_file_is_io_error(self, library):
        (library.library_path / "broken.pt").write_bytes(b"garbage")
        with pytest.raises(StoreIOError):
            library.get_dmp("broken")
        assert "broken" not in library


class TestEndToEnd:
    """Full add/overwrite/reload scenario."""

    def test_ids_survive_fresh_reload(self, temp_dir, dmp_factory):
        lib = DMPLibrary(VERSION_TAG)
        lib.initialize(temp_dir)

        lib.add_dmp(dmp_factory(1.0), "grasp")
        assert lib.get("grasp").id == 1
        lib.add_dmp(dmp_factory(2.0), "reach")
        assert lib.get("reach").id == 2
        lib.add_dmp(dmp_factory(3.0), "grasp")
        assert lib.get("grasp").id == 1
        assert lib.get("grasp").payload["tau"] == 3.0

        fresh = DMPLibrary(VERSION_TAG)
        fresh.initialize(temp_dir)

        assert {name: fresh.get(name).id for name in fresh.names()} == {"grasp": 1, "reach": 2}
        assert fresh.get("grasp").payload["tau"] == 3.0
        assert fresh.describe() == [(1, "grasp", 1), (2, "reach", 2)]
        assert fresh.print_contents() == fresh.describe()
