"""Configuration loader for dropsync."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

CONFIG_FILENAME = "dropsync.yaml"
SYNC_ROOT_ENV_VAR = "DROPSYNC_ROOT"


class ConfigError(Exception):
    """Raised when config validation fails."""

    pass


@dataclass(frozen=True)
class AppEntry:
    """One configured application, resolved for the current host."""

    name: str
    local_path: Path
    mirror_path: Path
    include_only: Optional[str] = None
    disabled: bool = False
    play_path: Optional[Path] = None
    play_root_path: Optional[Path] = None

    def validate(self) -> None:
        """Ensure both roots exist. Roots are never created by the engine.

        Raises:
            ConfigError: If either root is missing or is not a directory
        """
        for label, root in (("path", self.local_path), ("dropbox_path", self.mirror_path)):
            if not root.is_dir():
                raise ConfigError(
                    f"App '{self.name}': {label} '{root}' does not exist or is not a directory"
                )


class Config:
    """Configuration object for dropsync."""

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self._config = config_dict
        self._validate()

    def _validate(self) -> None:
        """Validate the top-level shape of the document."""
        if not isinstance(self._config, dict):
            raise ConfigError("The top-level value of a config file must be a mapping")

        apps = self._config.get("apps")
        if not isinstance(apps, dict):
            raise ConfigError("Missing required config key: apps")

        for name, block in apps.items():
            if not isinstance(block, dict):
                raise ConfigError(f"Config for app '{name}' must be a mapping")

        self._validate_logging()

    def _validate_logging(self) -> None:
        """Validate the optional logging block."""
        logging_config = self._config.get("logging")
        if logging_config is None:
            return
        if not isinstance(logging_config, dict):
            raise ConfigError("logging must be a mapping")

        level = logging_config.get("level", "INFO")
        if not isinstance(level, str):
            raise ConfigError(f"logging.level must be a string, got {level!r}")

        file_path = logging_config.get("file_path")
        if file_path is not None and not isinstance(file_path, str):
            raise ConfigError(f"logging.file_path must be a string, got {file_path!r}")

        # bool is an int subclass
        max_size_mb = logging_config.get("max_size_mb", 10)
        if isinstance(max_size_mb, bool) or not isinstance(max_size_mb, int) or max_size_mb <= 0:
            raise ConfigError(f"logging.max_size_mb must be a positive integer, got {max_size_mb!r}")

        backup_count = logging_config.get("backup_count", 5)
        if isinstance(backup_count, bool) or not isinstance(backup_count, int) or backup_count < 0:
            raise ConfigError(
                f"logging.backup_count must be a non-negative integer, got {backup_count!r}"
            )

    @property
    def app_names(self) -> List[str]:
        """Get all configured app names in alphabetical order."""
        return sorted(str(name) for name in self._config["apps"])

    @property
    def log_file_path(self) -> Optional[str]:
        """Get log file path."""
        return (self._config.get("logging") or {}).get("file_path")

    @property
    def log_level(self) -> str:
        """Get log level."""
        return (self._config.get("logging") or {}).get("level", "INFO")

    @property
    def log_max_size_mb(self) -> int:
        """Get max log file size in MB before rotation."""
        return (self._config.get("logging") or {}).get("max_size_mb", 10)

    @property
    def log_backup_count(self) -> int:
        """Get number of rotated log files to keep."""
        return (self._config.get("logging") or {}).get("backup_count", 5)

    def _merged_block(self, name: str, hostname: str) -> Dict[str, Any]:
        """Shallow-merge the host override block over an app's defaults."""
        block = self._config["apps"][name]
        merged = {key: value for key, value in block.items() if not isinstance(value, dict)}
        override = block.get(hostname)
        if isinstance(override, dict):
            merged.update(override)
        return merged

    def resolve_app(self, name: str, hostname: str, sync_root: Path) -> AppEntry:
        """Resolve a single app entry for a host.

        Args:
            name: App name as it appears under ``apps``
            hostname: Current host, selects the override block
            sync_root: Base of the synchronized folder; ``dropbox_path`` is relative to it

        Returns:
            AppEntry

        Raises:
            ConfigError: If the app is unknown or its values are missing or invalid
        """
        if name not in self._config["apps"]:
            raise ConfigError(f"Unknown app: {name}")

        values = self._merged_block(name, hostname)

        def required_str(key: str) -> str:
            value = values.get(key)
            if value is None:
                raise ConfigError(
                    f"Unable to find config key '{key}' for app '{name}' and hostname '{hostname}'"
                )
            if not isinstance(value, str):
                raise ConfigError(f"Config key '{key}' for app '{name}' must be a string")
            return value

        def optional_str(key: str) -> Optional[str]:
            value = values.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"Config key '{key}' for app '{name}' must be a string")
            return value

        disabled = values.get("disabled", False)
        if not isinstance(disabled, bool):
            raise ConfigError(f"Config key 'disabled' for app '{name}' must be a boolean")

        local_path = Path(required_str("path")).expanduser()
        # Forward slashes are accepted on every OS
        mirror_path = Path(sync_root) / Path(*required_str("dropbox_path").split("/"))

        play_root_str = optional_str("play_root_path")
        play_root_path = Path(play_root_str).expanduser() if play_root_str else None

        play_path_str = optional_str("play_path")
        play_path = None
        if play_path_str:
            play_path = Path(play_path_str).expanduser()
            if play_root_path is not None and not play_path.is_absolute():
                play_path = play_root_path / play_path

        return AppEntry(
            name=name,
            local_path=local_path,
            mirror_path=mirror_path,
            include_only=optional_str("include_only") or None,
            disabled=disabled,
            play_path=play_path,
            play_root_path=play_root_path,
        )

    def app_entries(
        self, hostname: str, sync_root: Path, include_disabled: bool = False
    ) -> Tuple[List[AppEntry], List[Tuple[str, ConfigError]]]:
        """Resolve every app entry for a host, in alphabetical order.

        Entries that fail to resolve do not prevent the others from resolving.

        Returns:
            Tuple of (resolved entries, list of (app name, error) pairs)
        """
        entries = []
        errors = []
        for name in self.app_names:
            try:
                entry = self.resolve_app(name, hostname, sync_root)
            except ConfigError as e:
                errors.append((name, e))
                continue
            if entry.disabled and not include_disabled:
                continue
            entries.append(entry)
        return entries, errors


def get_sync_root(override: Optional[str] = None) -> Path:
    """Locate the base of the synchronized folder.

    Precedence: explicit override, then the DROPSYNC_ROOT environment
    variable, then ``~/Dropbox``.

    Raises:
        ConfigError: If the directory does not exist
    """
    raw = override or os.getenv(SYNC_ROOT_ENV_VAR)
    root = Path(raw).expanduser() if raw else Path.home() / "Dropbox"
    if not root.is_dir():
        raise ConfigError(f"Sync folder does not exist: {root}")
    return root


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to dropsync.yaml file

    Returns:
        Config object

    Raises:
        ConfigError: If config file doesn't exist or is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    return Config(config_dict)


def load_config_from_sync_root(sync_root: Path) -> Config:
    """Load the config file that lives at the top of the synchronized folder."""
    return load_config(str(Path(sync_root) / CONFIG_FILENAME))
