#!/usr/bin/env python3
"""Inspect the skill library and recorded experiments.

Usage:
    python inspect_store.py library --root skill_library --version-tag dmp_v1
    python inspect_store.py experiments --data-dir recorder_data --package task_recorder2
    python inspect_store.py experiments --params recorder_params.json

The library command reloads the library from disk and prints every artifact
with its id. The experiments command lists experiment folders and, for each
directory holding counter files, the number of committed trials per topic
together with any trials whose data file is missing.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path for imports
SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
SRC_DIR = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))

from config import LibraryConfig, ParameterReader, RecorderConfig
from constants import (
    COUNTER_FILE_ENDING,
    RECORDER_DATA_DIRECTORY_NAME,
    RECORDER_PACKAGE_NAME,
)
from errors import ArtifactStoreError
from library.dmp_library import DMPLibrary
from recording import trial_versioning
from storage.paths import get_directory_list, topic_from_file_stem

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def inspect_library(root: str, version_tag: str) -> int:
    library_path = Path(root) / version_tag
    if not library_path.is_dir():
        print(f"Error: Library directory not found: {library_path}")
        return 1

    library = DMPLibrary(version_tag)
    library.initialize(root)
    entries = library.print_contents()

    print(f"Library: {library.library_path}")
    if not entries:
        print("  (empty)")
    for index, name, artifact_id in entries:
        print(f"  ({index}) {name} [id {artifact_id}]")
    return 0


def inspect_trial_directory(path: Path, indent: str) -> None:
    """Print committed trial counts for every counter file in path."""
    for counter_file in sorted(path.glob(f"*{COUNTER_FILE_ENDING}")):
        topic = topic_from_file_stem(counter_file.name[:-len(COUNTER_FILE_ENDING)])
        counter = trial_versioning.peek_counter(path, topic)
        if counter is None:
            continue
        missing = trial_versioning.get_missing_trials(path, counter, topic)
        status = "complete" if not missing else f"missing trials {missing}"
        print(f"{indent}{topic}: {counter} trials ({status})")


def inspect_experiments(data_directory: Path) -> int:
    if not data_directory.exists():
        print(f"Error: Data directory not found: {data_directory}")
        return 1

    experiments = get_directory_list(data_directory)
    print(f"Experiments in {data_directory}:")
    if not experiments:
        print("  (none)")
    for experiment in experiments:
        experiment_path = data_directory / experiment
        print(f"  {experiment}")
        inspect_trial_directory(experiment_path, "    ")
        for subdirectory in get_directory_list(experiment_path):
            print(f"    {subdirectory}/")
            inspect_trial_directory(experiment_path / subdirectory, "      ")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Inspect the skill library and recorded experiments"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    library_parser = subparsers.add_parser("library", help="List library artifacts")
    library_parser.add_argument(
        "--root",
        default=LibraryConfig.root_directory,
        help="Library root directory",
    )
    library_parser.add_argument(
        "--version-tag",
        default=LibraryConfig.version_tag,
        help="Version tag (subdirectory) of the artifacts",
    )

    experiments_parser = subparsers.add_parser("experiments", help="List recorded experiments")
    experiments_parser.add_argument(
        "--params",
        help="JSON file with recorder parameters (overrides --data-dir/--package)",
    )
    experiments_parser.add_argument(
        "--data-dir",
        default=RecorderConfig.recorder_data_directory_name,
        help="Recorder data directory",
    )
    experiments_parser.add_argument(
        "--package",
        default=RecorderConfig.recorder_package_name,
        help="Recorder package name",
    )

    args = parser.parse_args()

    try:
        if args.command == "library":
            return inspect_library(args.root, args.version_tag)

        data_directory_name = args.data_dir
        package_name = args.package
        if args.params:
            params = ParameterReader.from_json_file(args.params)
            data_directory_name = params.read_str(RECORDER_DATA_DIRECTORY_NAME)
            package_name = params.read_str(RECORDER_PACKAGE_NAME)
        return inspect_experiments(Path(data_directory_name).expanduser().absolute() / package_name)
    except ArtifactStoreError as e:
        print(f"Error ({e.kind.value}): {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
