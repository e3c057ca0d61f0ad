"""Configuration dataclasses and the key-value parameter reader."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from errors import ConfigurationError
from storage.message_codec import to_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LibraryConfig:
    """Configuration for the skill library."""

    root_directory: str = "skill_library"
    # Subdirectory per artifact format; files of one format never mix with another
    version_tag: str = "dmp_v1"


@dataclass(frozen=True)
class RecorderConfig:
    """Parameters consumed by TaskRecorderIO.initialize().

    Field names are the parameter keys, so a RecorderConfig can be handed to
    ParameterReader.from_config() directly.
    """

    write_out_raw_data: bool = True
    write_out_clmc_data: bool = False
    write_out_resampled_data: bool = True
    recorder_package_name: str = "task_recorder2"
    recorder_data_directory_name: str = "recorder_data"


@dataclass
class Config:
    """Master configuration combining all config sections."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    recorder: RecorderConfig = field(default_factory=RecorderConfig)


class ParameterReader:
    """Read-only key-value parameter source.

    Stands in for a process-wide parameter service: values are looked up by
    key and type-checked on read. A missing or ill-typed key raises
    ConfigurationError so that initialization fails fast.

    Usage:
        params = ParameterReader.from_config(RecorderConfig())
        raw = params.read_bool("write_out_raw_data")
    """

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self._parameters: Dict[str, Any] = dict(parameters or {})

    @classmethod
    def from_dict(cls, parameters: Mapping[str, Any]) -> "ParameterReader":
        return cls(parameters)

    @classmethod
    def from_config(cls, config: Any) -> "ParameterReader":
        """Build a reader from a (frozen) configuration dataclass."""
        return cls(to_message(config))

    @classmethod
    def from_json_file(cls, path: str) -> "ParameterReader":
        """Load parameters from a flat JSON object.

        Raises:
            ConfigurationError: If the file is missing or not a JSON object
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read parameter file >{path}<: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Parameter file >{path}< must contain a JSON object")
        logger.debug(f"Loaded {len(data)} parameters from {Path(path).name}")
        return cls(data)

    def has(self, key: str) -> bool:
        return key in self._parameters

    def read(self, key: str) -> Any:
        """Return the raw value stored under key.

        Raises:
            ConfigurationError: If the key is not present
        """
        if key not in self._parameters:
            logger.error(f"Parameter >{key}< not found.")
            raise ConfigurationError(f"Parameter >{key}< not found")
        return self._parameters[key]

    def read_bool(self, key: str) -> bool:
        value = self.read(key)
        if not isinstance(value, bool):
            raise ConfigurationError(
                f"Parameter >{key}< must be a boolean, got {type(value).__name__}"
            )
        return value

    def read_str(self, key: str) -> str:
        value = self.read(key)
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Parameter >{key}< must be a string, got {type(value).__name__}"
            )
        return value
