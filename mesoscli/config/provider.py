"""Configuration provider following Black Box Design principles."""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as ModelValidationError

from mesoscli.errors import ConfigError
from mesoscli.modules.api import TaskInfo
from mesoscli.modules.builder import default_task_info

logger = logging.getLogger(__name__)

DEFAULT_MASTER = "http://localhost:5050"
DEFAULT_PROFILE = "default"
DEFAULT_CONFIG_PATH = str(Path.home() / ".mesos-cli.json")


class Profile(BaseModel):
    """Named defaults: the master to talk to and the base task specification."""

    master: str = DEFAULT_MASTER
    task_info: Optional[TaskInfo] = None

    def with_master(self, master: Optional[str]) -> "Profile":
        """Copy of this profile with the master overridden when one is given."""
        if not master:
            return self
        return self.model_copy(update={"master": master})


class ConfigFile(BaseModel):
    """On-disk layout of the config file."""

    profiles: Dict[str, Profile] = Field(default_factory=dict)


@dataclass
class CLISettings:
    """Process-level settings resolved from the environment."""
    config_path: str
    profile: str
    master: Optional[str]
    timeout: float
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_settings(self) -> CLISettings:
        """Get CLI settings."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_settings(self) -> CLISettings:
        """
        Get CLI settings from environment variables.

        Raises:
            ConfigError: If MESOS_CLI_TIMEOUT is not a number
        """
        raw_timeout = os.getenv("MESOS_CLI_TIMEOUT", "10")
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise ConfigError(f"Invalid MESOS_CLI_TIMEOUT {raw_timeout!r}, expected seconds") from e
        return CLISettings(
            config_path=os.getenv("MESOS_CLI_CONFIG", DEFAULT_CONFIG_PATH),
            profile=os.getenv("MESOS_CLI_PROFILE", DEFAULT_PROFILE),
            master=os.getenv("MESOS_MASTER") or None,
            timeout=timeout,
            log_level=os.getenv("LOG_LEVEL", "WARNING"),
        )


def default_profile() -> Profile:
    """The profile written to a fresh config file."""
    task_info = default_task_info()
    task_info.task_id = None  # Every launch gets its own ID
    return Profile(master=DEFAULT_MASTER, task_info=task_info)


def load_profile(path: str, name: str = DEFAULT_PROFILE) -> Profile:
    """
    Load a profile from the config file.

    Creates the file with a default profile when it does not exist.

    Args:
        path: Config file path
        name: Profile name

    Returns:
        The profile, with the default task specification filled in when absent

    Raises:
        ConfigError: If the file cannot be read or parsed, or the profile is unknown
    """
    config_path = Path(path).expanduser()

    if not config_path.exists():
        config = ConfigFile(profiles={DEFAULT_PROFILE: default_profile()})
        try:
            config_path.write_text(
                json.dumps(config.model_dump(mode="json", exclude_none=True), indent=2)
            )
        except OSError as e:
            raise ConfigError(f"Cannot write config file {config_path}: {e}") from e
        logger.info(f"Created config file {config_path}")
        return config.profiles[DEFAULT_PROFILE]

    try:
        config = ConfigFile.model_validate(json.loads(config_path.read_text()))
    except (OSError, json.JSONDecodeError, ModelValidationError) as e:
        raise ConfigError(f"Cannot load config file {config_path}: {e}") from e

    if name not in config.profiles:
        raise ConfigError(f"Cannot load profile: {name}")

    profile = config.profiles[name]
    if profile.task_info is None:
        profile.task_info = default_task_info()
    return profile
