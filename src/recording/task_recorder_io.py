"""Per-topic recording session: buffered samples, trial directories, writers.

Directory structure:
    {recorder_data_directory_name}/{recorder_package_name}/
        latest -> {description}_{id}      # most recently created experiment
        {description}_{id}/
            {topic}.counter
            {topic}_trial_{n}.pt
            {topic}_trial_{n}.clmc
            raw/
                {topic}.counter
                {topic}_trial_{n}.pt
            resampled/
                ...

Lifecycle per topic:
    UNINITIALIZED -> initialize() -> INITIALIZED -> set_description()
    -> DESCRIPTION_SET -> create_directories() -> DIRECTORIES_READY

Each write_recorded_data() call writes the buffer as the current trial and
then advances the trial counter, leaving the session ready for the next trial.
The buffer is never cleared by the session; call messages.clear() between
trials.
"""

import logging
import os
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import List, Optional

from config import ParameterReader
from constants import (
    CLMC_TIME_VARIABLE,
    LATEST_SYMLINK_NAME,
    RAW_DIRECTORY_NAME,
    RECORDER_DATA_DIRECTORY_NAME,
    RECORDER_PACKAGE_NAME,
    RESAMPLED_DIRECTORY_NAME,
    SINGLE_SAMPLE_DURATION,
    WRITE_OUT_CLMC_DATA,
    WRITE_OUT_RAW_DATA,
    WRITE_OUT_RESAMPLED_DATA,
)
from errors import (
    InvalidArgumentError,
    InvalidStateError,
    PreconditionFailedError,
    StoreIOError,
)
from recording import trial_versioning
from recording.abstractions import DataSample, Description, SampleBuffer, get_file_name
from recording.trajectory import CLMCTrajectory
from storage import serializer
from storage.paths import (
    check_and_create_directories,
    check_for_directory,
    get_clmc_file_name,
    get_data_file_name,
    get_directory_list,
    normalize_topic_name,
    topic_file_stem,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    DESCRIPTION_SET = 2
    DIRECTORIES_READY = 3


class TaskRecorderIO:
    """Recording session for one topic.

    Usage:
        recorder = TaskRecorderIO(ParameterReader.from_config(RecorderConfig()))
        recorder.initialize("/joint_states")
        recorder.set_description(Description("reach", id=2))
        recorder.create_raw_directories()
        recorder.messages.extend(samples)
        recorder.write_raw_data()
        recorder.messages.clear()
    """

    def __init__(self, parameters: ParameterReader) -> None:
        """Initialize an unconfigured session.

        Args:
            parameters: Source of the recorder configuration keys
        """
        self._parameters = parameters
        self._state = SessionState.UNINITIALIZED

        self.topic_name = ""
        self.prefixed_topic_name = ""
        self.messages = SampleBuffer()
        self.write_out_raw_data = False
        self.write_out_clmc_data = False
        self.write_out_resampled_data = False

        self._description: Optional[Description] = None
        self._data_directory_path = Path()
        self._absolute_data_directory_path: Optional[Path] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def data_directory_path(self) -> Path:
        """Return the directory holding all experiment folders."""
        return self._data_directory_path

    @property
    def experiment_directory_path(self) -> Optional[Path]:
        """Return the folder of the current description, once created."""
        return self._absolute_data_directory_path

    @property
    def trial(self) -> int:
        """Return the current trial id."""
        return self._require_description().trial

    # -------------------------------------------------------------------------
    # Lifecycle guards
    # -------------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if self._state is SessionState.UNINITIALIZED:
            raise PreconditionFailedError("Task recorder IO module is not initialized.")

    def _require_description(self) -> Description:
        self._ensure_initialized()
        if self._description is None:
            raise PreconditionFailedError("No description set. Call set_description() first.")
        return self._description

    def _require_directories(self) -> Path:
        self._require_description()
        if self._state is not SessionState.DIRECTORIES_READY or self._absolute_data_directory_path is None:
            raise PreconditionFailedError(
                "Directories have not been created. Call create_directories() first."
            )
        return self._absolute_data_directory_path

    def _subdirectory_path(self, base: Path, directory_name: str) -> Path:
        if not directory_name:
            return base
        if Path(directory_name).name != directory_name or directory_name in (".", ".."):
            raise InvalidArgumentError(f"Invalid subdirectory name >{directory_name}<")
        return base / directory_name

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def initialize(self, topic_name: str, prefix: str = "") -> None:
        """Configure the session for one topic.

        Args:
            topic_name: Topic the samples are recorded from
            prefix: Prepended to the topic name (after its leading slash)

        Raises:
            InvalidArgumentError: If the topic name is empty or not a valid topic
            ConfigurationError: If a required parameter is missing or ill-typed
            StoreIOError: If the data directory cannot be created
        """
        if not topic_name.strip("/"):
            raise InvalidArgumentError("Topic name must not be empty")
        prefixed_topic_name = normalize_topic_name(topic_name, prefix)
        topic_file_stem(prefixed_topic_name)
        self.topic_name = topic_name
        self.prefixed_topic_name = prefixed_topic_name
        logger.info(
            f"Initializing task recorder >{self.prefixed_topic_name}< for topic named >{self.topic_name}<."
        )

        self.write_out_resampled_data = self._parameters.read_bool(WRITE_OUT_RESAMPLED_DATA)
        self.write_out_raw_data = self._parameters.read_bool(WRITE_OUT_RAW_DATA)
        self.write_out_clmc_data = self._parameters.read_bool(WRITE_OUT_CLMC_DATA)

        package_name = self._parameters.read_str(RECORDER_PACKAGE_NAME)
        data_directory_name = self._parameters.read_str(RECORDER_DATA_DIRECTORY_NAME)
        self._data_directory_path = (
            Path(data_directory_name).expanduser().absolute() / package_name
        )
        check_and_create_directories(self._data_directory_path)
        logger.debug(f"Setting TaskRecorderIO data directory name to >{self._data_directory_path}<.")

        self._state = SessionState.INITIALIZED

    def set_description(self, description: Description) -> None:
        """Set the experiment of the following trials.

        Directories have to be created again after a new description is set.
        """
        self._ensure_initialized()
        self._description = replace(description)
        self._absolute_data_directory_path = None
        self._state = SessionState.DESCRIPTION_SET

    def get_description(self) -> Description:
        """Return a copy of the last description, with the resolved trial."""
        return replace(self._require_description())

    def close(self) -> None:
        """Release every (directory, topic) key this session writes to."""
        trial_versioning.writer_registry.release_all(self)

    # -------------------------------------------------------------------------
    # Directories and trial ids
    # -------------------------------------------------------------------------

    def _create_experiment_directory(self, description: Description) -> Path:
        check_and_create_directories(self._data_directory_path)
        path = self._data_directory_path / get_file_name(description)
        if not path.exists():
            try:
                path.mkdir()
            except OSError as e:
                logger.error(f"Could not create directory >{path}<: {e}")
                raise StoreIOError(f"Could not create directory >{path}<: {e}") from e
            self._create_symlinks(path)
        return path

    def _create_symlinks(self, experiment_path: Path) -> None:
        """Point the data directory's "latest" link at experiment_path."""
        link = self._data_directory_path / LATEST_SYMLINK_NAME
        try:
            if link.is_symlink():
                link.unlink()
            elif link.exists():
                logger.warning(f">{link}< exists and is not a symlink. Not replacing it.")
                return
            os.symlink(experiment_path.name, link, target_is_directory=True)
        except (OSError, NotImplementedError) as e:
            logger.warning(f"Could not create symlink >{link}<: {e}")

    def _resolve_trial(self, path: Path, opening: bool = False) -> int:
        """Claim (path, topic), resolve the next trial and verify earlier ones.

        Every trial below the resolved one must exist in path. The other
        written directories of the experiment are checked up to the resolved
        trial when a trial is opened, and up to the one before it otherwise,
        since that trial may still be in progress in a sibling directory.
        """
        description = self._require_description()
        topic = self.prefixed_topic_name
        trial_versioning.writer_registry.claim(path, topic, self)
        description.trial = trial_versioning.get_trial_id(path, topic)
        trial_versioning.check_for_completeness(path, description.trial, topic)
        bound = description.trial if opening else max(description.trial - 1, 0)
        trial_versioning.check_for_experiment_completeness(
            self._absolute_data_directory_path, bound, topic
        )
        return description.trial

    def create_directories(self, directory_name: str = "") -> int:
        """Create the experiment folder (and subdirectory) and resolve the trial.

        Args:
            directory_name: Optional subdirectory, e.g. "raw" or "resampled"

        Returns:
            The trial id the next write will use

        Raises:
            PreconditionFailedError: If no description has been set
            StoreIOError: If a directory cannot be created
            InvalidStateError: If an earlier trial is incomplete, or another
                session writes the same topic into the same directory
        """
        description = self._require_description()
        self._absolute_data_directory_path = self._create_experiment_directory(description)
        path = check_for_directory(
            self._subdirectory_path(self._absolute_data_directory_path, directory_name)
        )
        trial = self._resolve_trial(path, opening=True)
        self._state = SessionState.DIRECTORIES_READY
        logger.debug(f"Setting trial to >{trial}<.")
        return trial

    def create_raw_directories(self) -> int:
        return self.create_directories(RAW_DIRECTORY_NAME)

    def create_resampled_directories(self) -> int:
        return self.create_directories(RESAMPLED_DIRECTORY_NAME)

    def increment_counter_file(self, directory_name: str = "") -> int:
        """Advance the trial counter and resolve the next trial.

        Returns:
            The new trial id

        Raises:
            InvalidStateError: If an earlier trial is incomplete
        """
        path = self._subdirectory_path(self._require_directories(), directory_name)
        trial_versioning.increment_counter(path, self.prefixed_topic_name)
        return self._resolve_trial(path)

    def increment_data_samples_counter_file(self) -> int:
        return self.increment_counter_file("")

    def increment_raw_data_counter_file(self) -> int:
        return self.increment_counter_file(RAW_DIRECTORY_NAME)

    def increment_resampled_data_counter_file(self) -> int:
        return self.increment_counter_file(RESAMPLED_DIRECTORY_NAME)

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def _prepare_write_directory(self, directory_name: str) -> Path:
        check_and_create_directories(self._data_directory_path)
        path = self._subdirectory_path(self._require_directories(), directory_name)
        return check_for_directory(path)

    def write_recorded_data(self, directory_name: str = "") -> Path:
        """Write the buffer as the current trial and advance the counter.

        The counter is only advanced after the data file is in place.

        Args:
            directory_name: Optional subdirectory, e.g. "raw" or "resampled"

        Returns:
            Path of the written data file

        Raises:
            PreconditionFailedError: If directories have not been created
            StoreIOError: If the data file cannot be written
            InvalidStateError: If an earlier trial is incomplete
        """
        path = self._prepare_write_directory(directory_name)
        trial = self._resolve_trial(path)
        file_name = path / get_data_file_name(self.prefixed_topic_name, trial)
        records = [(sample.stamp, sample.to_message()) for sample in self.messages]
        serializer.write_to_file_with_time_stamps(records, self.topic_name, file_name)
        logger.info(f"Wrote {len(records)} samples of >{self.topic_name}< to >{file_name}<.")
        self.increment_counter_file(directory_name)
        return file_name

    def write_recorded_data_samples(self) -> Path:
        return self.write_recorded_data("")

    def write_raw_data(self) -> Path:
        return self.write_recorded_data(RAW_DIRECTORY_NAME)

    def write_resampled_data(self) -> Path:
        return self.write_recorded_data(RESAMPLED_DIRECTORY_NAME)

    def write_recorded_data_to_clmc_file(self, directory_name: str = "") -> CLMCTrajectory:
        """Export the buffer as a CLMC trajectory for the current trial.

        The sampling frequency is the number of samples over the recorded
        duration; a single sample is treated as lasting SINGLE_SAMPLE_DURATION.
        The trial counter is not advanced.

        Returns:
            The exported trajectory

        Raises:
            PreconditionFailedError: If the buffer is empty or directories
                have not been created
            InvalidStateError: If the recorded duration is not positive
            InvalidArgumentError: If a sample's channel count differs from the first
            StoreIOError: If the file cannot be written
        """
        self._require_directories()
        if self.messages.is_empty():
            raise PreconditionFailedError("Messages are empty. Cannot write anything to CLMC file.")

        path = self._prepare_write_directory(directory_name)
        trial = trial_versioning.get_trial_id(path, self.prefixed_topic_name)
        self._require_description().trial = trial
        file_name = path / get_clmc_file_name(self.prefixed_topic_name, trial)

        trajectory_length = len(self.messages)
        trajectory_duration = self.messages[-1].stamp - self.messages[0].stamp
        if trajectory_length == 1:
            logger.warning(
                f"Only >{trajectory_length}< data sample contained when writing out CLMC data file."
            )
            trajectory_duration = SINGLE_SAMPLE_DURATION
        if trajectory_duration <= 0.0:
            logger.error(
                f"Trajectory duration >{trajectory_duration}< of trajectory named >{file_name}< must be positive."
            )
            raise InvalidStateError(
                f"Trajectory duration >{trajectory_duration}< of >{file_name}< must be positive"
            )
        sampling_frequency = trajectory_length / trajectory_duration

        channel_names = list(self.messages[0].names)
        trajectory = CLMCTrajectory([CLMC_TIME_VARIABLE] + channel_names, sampling_frequency)
        for sample in self.messages:
            trajectory.add([sample.stamp] + list(sample.data))
        trajectory.write_to_clmc_file(file_name)
        return trajectory

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_abs_file_name(self, description: Description, directory_name: str = "") -> Path:
        """Return the data file path of description's trial."""
        self._ensure_initialized()
        path = self._subdirectory_path(
            self._data_directory_path / get_file_name(description), directory_name
        )
        return path / get_data_file_name(self.prefixed_topic_name, description.trial)

    def read_data_samples(self, description: Description, directory_name: str = "") -> List[DataSample]:
        """Read the samples stored for description's trial.

        Raises:
            StoreIOError: If the data file is missing or unreadable
        """
        abs_file_name = self.get_abs_file_name(description, directory_name)
        if not abs_file_name.is_file():
            logger.error(f"Could not read data samples in >{abs_file_name}<.")
            raise StoreIOError(f"No data samples at >{abs_file_name}<")
        records = serializer.read_from_file_with_time_stamps(self.topic_name, abs_file_name, strict=False)
        return [DataSample.from_message(stamp, message) for stamp, message in records]

    def get_list(self) -> List[str]:
        """Return the experiment folder names in the data directory."""
        self._ensure_initialized()
        return get_directory_list(self._data_directory_path)
