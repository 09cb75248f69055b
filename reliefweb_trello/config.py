"""Configuration management for reliefweb-trello using YAML files."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".reliefweb-trello"
CONFIG_ENV_VAR = "RWT_CONFIG"

CONNECTORS = ("countries", "disasters", "topics")

# Scalar settings stored under dotted keys.
SETTING_KEYS = (
    "trello.key",
    "trello.token",
    "trello.board_id",
    "trello.url",
    "rwapi.appname",
    "rwapi.url",
    "rwapi.preset",
    "debug",
)
SECRET_KEYS = ("trello.key", "trello.token")

# Scalar settings of the connector sections, set as <section>.<name>. Lists,
# labels and statuses are edited in the YAML file.
SECTION_KEYS = {
    "countries": ("board_id", "debug"),
    "disasters": ("board_id", "debug"),
    "topics": ("board_id", "debug"),
    "overview": ("board_id", "organization", "project_prefix", "doer_prefix", "debug"),
}


class Config:
    """Configuration manager using YAML file storage.

    Supports both local (working directory) and global (user-level) configuration.
    Local config is stored in .reliefweb-trello/config.yaml in the current directory.
    Global config is stored in ~/.reliefweb-trello/config.yaml.

    When reading, values are looked up in local config first, then global config.
    An explicit config file (argument or RWT_CONFIG environment variable) replaces
    both.
    """

    def __init__(
        self,
        use_global: bool = False,
        config_dir: Path | None = None,
        config_file: Path | None = None,
    ) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
            config_file: Explicit config file, no fallback is used
        """
        if config_file is None and os.environ.get(CONFIG_ENV_VAR):
            config_file = Path(os.environ[CONFIG_ENV_VAR])

        self._global_config: dict[str, Any] = {}

        if config_file is not None:
            self.config_file = Path(config_file)
            self.config_dir = self.config_file.parent
            self.is_global = True
        else:
            if config_dir is not None:
                self.config_dir = Path(config_dir)
                self.is_global = use_global
            elif use_global:
                self.config_dir = Path.home() / CONFIG_DIR_NAME
                self.is_global = True
            else:
                self.config_dir = Path.cwd() / CONFIG_DIR_NAME
                self.is_global = False
            self.config_file = self.config_dir / "config.yaml"

            # For local config, also load global config as fallback
            if not self.is_global:
                global_config_file = Path.home() / CONFIG_DIR_NAME / "config.yaml"
                if global_config_file.exists() and global_config_file != self.config_file:
                    try:
                        with open(global_config_file, "r") as f:
                            self._global_config = yaml.safe_load(f) or {}
                    except (OSError, yaml.YAMLError) as e:
                        logger.warning("Failed to load global config", error=str(e))

        self._config: dict[str, Any] = self._load()

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        """Load configuration from YAML file.

        Returns:
            Configuration dictionary
        """
        if not self.config_file.exists():
            logger.debug("Config file does not exist, initializing empty config")
            return {}

        try:
            with open(self.config_file, "r") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Config file {self.config_file} must contain a mapping")
        logger.debug("Config loaded successfully", keys=list(config.keys()))
        return config

    def _save(self) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
            logger.debug("Config saved successfully")
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        For local config, checks local config first, then falls back to global config.

        Args:
            key: Configuration key
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        if key in self._config:
            logger.debug("Getting config value from local", key=key)
            return self._config[key]

        if not self.is_global and key in self._global_config:
            logger.debug("Getting config value from global", key=key)
            return self._global_config[key]

        logger.debug("Config value not found", key=key)
        return default

    def get_own(self, key: str, default: Any = None) -> Any:
        """Get a value of this configuration file only, without the global fallback."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value.

        Args:
            key: Configuration key
            value: Configuration value, a string or a connector section mapping
        """
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        """Remove a configuration value.

        Args:
            key: Configuration key
        """
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, Any]:
        """List all configuration settings.

        For local config, merges global config with local config (local takes precedence).
        """
        if self.is_global:
            logger.debug("Listing global config values", count=len(self._config))
            return self._config.copy()
        merged = self._global_config.copy()
        merged.update(self._config)
        logger.debug("Listing merged config values", count=len(merged))
        return merged


def get_config(use_global: bool = False, config_file: Path | None = None) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.
        config_file: Explicit config file to use instead of the local and global ones.
    """
    return Config(use_global=use_global, config_file=config_file)


def _section_key(key: str) -> tuple[str, str] | None:
    """Split a connector section key such as ``disasters.board_id``."""
    section, _, name = key.partition(".")
    if name in SECTION_KEYS.get(section, ()):
        return section, name
    return None


def _unknown_setting(key: str, config: Config) -> ValueError:
    section_keys = [f"{section}.{name}" for section, names in SECTION_KEYS.items() for name in names]
    return ValueError(
        f"Unknown setting: {key}. Known settings are {', '.join(SETTING_KEYS + tuple(section_keys))}. "
        f"Lists, labels and statuses are edited in {config.config_file}"
    )


def get_setting(config: Config, key: str) -> Any:
    """Read a scalar setting or a whole connector section."""
    if key in SETTING_KEYS or key in SECTION_KEYS:
        return config.get(key)
    section_key = _section_key(key)
    if section_key is None:
        raise _unknown_setting(key, config)
    section, name = section_key
    return _section(config, section).get(name)


def set_setting(config: Config, key: str, value: str) -> None:
    """Write a scalar setting, inside its connector section for section keys.

    Raises:
        ValueError: if the key is not a known setting.
    """
    if key in SETTING_KEYS:
        config.set(key, value)
        return
    section_key = _section_key(key)
    if section_key is None:
        raise _unknown_setting(key, config)
    section, name = section_key
    # The section of this file only, a local section replaces the global one.
    values = dict(config.get_own(section) or {})
    values[name] = value
    config.set(section, values)


def unset_setting(config: Config, key: str) -> None:
    """Remove a scalar setting. Emptied connector sections are removed."""
    if key in SETTING_KEYS or key in SECTION_KEYS:
        config.unset(key)
        return
    section_key = _section_key(key)
    if section_key is None:
        raise _unknown_setting(key, config)
    section, name = section_key
    values = dict(config.get_own(section) or {})
    if name not in values:
        return
    del values[name]
    if values:
        config.set(section, values)
    else:
        config.unset(section)


def mask_secret(key: str, value: Any) -> Any:
    """Hide most of the Trello credentials when printing them."""
    if key not in SECRET_KEYS or not value:
        return value
    value = str(value)
    return value[:4] + "****" if len(value) > 8 else "****"


@dataclass(frozen=True)
class ListConfig:
    """Board list holding the cards of the entities with the given status."""

    name: str
    status: str
    position: int = 0


@dataclass(frozen=True)
class TrelloSettings:
    key: str
    token: str
    board_id: str
    url: str = "https://api.trello.com/1"


@dataclass(frozen=True)
class RWApiSettings:
    appname: str
    url: str = "https://api.reliefweb.int/v1"
    preset: str = "latest"


@dataclass(frozen=True)
class ConnectorSettings:
    """Settings of a ReliefWeb connector (countries, disasters or topics)."""

    trello: TrelloSettings
    rwapi: RWApiSettings
    lists: tuple[ListConfig, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)
    statuses: dict[str, str] = field(default_factory=dict)
    debug: bool = False


@dataclass(frozen=True)
class OverviewSettings:
    """Settings of the overview connector."""

    trello: TrelloSettings
    organization: str
    project_prefix: str
    doer_prefix: str
    excluded_boards: tuple[str, ...] = ()
    debug: bool = False


def _section(config: Config, name: str) -> dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config key '{name}' must be a mapping")
    return section


def _trello_settings(config: Config, section: dict[str, Any]) -> TrelloSettings:
    key = config.get("trello.key")
    token = config.get("trello.token")
    board_id = section.get("board_id") or config.get("trello.board_id")
    if not key or not token:
        raise ValueError(
            "Trello credentials not configured. Set them using:\n"
            "  rwt config set trello.key <key>\n"
            "  rwt config set trello.token <token>"
        )
    if not board_id:
        raise ValueError("Trello board not configured. Set it using:\n  rwt config set trello.board_id <board>")
    return TrelloSettings(
        key=str(key),
        token=str(token),
        board_id=str(board_id),
        url=config.get("trello.url", TrelloSettings.url),
    )


def _list_configs(entries: Any, connector: str) -> tuple[ListConfig, ...]:
    if not entries:
        return ()
    if not isinstance(entries, list):
        raise ValueError(f"'{connector}.lists' must be a list")
    lists = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("status"):
            raise ValueError(f"Invalid list in '{connector}.lists': {entry!r}, 'name' and 'status' are required")
        lists.append(
            ListConfig(name=str(entry["name"]), status=str(entry["status"]), position=int(entry.get("position", 0)))
        )
    return tuple(lists)


def _debug(config: Config, section: dict[str, Any]) -> bool:
    value = section.get("debug", config.get("debug", False))
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_settings(config: Config, connector: str) -> ConnectorSettings:
    """Build the typed settings of a connector.

    Raises:
        ValueError: if the credentials are missing or the connector section is malformed.
    """
    if connector not in CONNECTORS:
        raise ValueError(f"Unknown connector: {connector}")

    section = _section(config, connector)
    appname = config.get("rwapi.appname")
    if not appname:
        raise ValueError("ReliefWeb appname not configured. Set it using:\n  rwt config set rwapi.appname <name>")

    labels = section.get("labels") or {}
    statuses = section.get("statuses") or {}
    if not isinstance(labels, dict) or not isinstance(statuses, dict):
        raise ValueError(f"'{connector}.labels' and '{connector}.statuses' must be mappings")

    settings = ConnectorSettings(
        trello=_trello_settings(config, section),
        rwapi=RWApiSettings(
            appname=str(appname),
            url=config.get("rwapi.url", RWApiSettings.url),
            preset=config.get("rwapi.preset", RWApiSettings.preset),
        ),
        lists=_list_configs(section.get("lists"), connector),
        labels={str(name): str(color or "") for name, color in labels.items()},
        statuses={str(status): str(value) for status, value in statuses.items()},
        debug=_debug(config, section),
    )
    logger.debug("Loaded connector settings", connector=connector, lists=len(settings.lists))
    return settings


def load_overview_settings(config: Config) -> OverviewSettings:
    """Build the typed settings of the overview connector."""
    section = _section(config, "overview")
    organization = section.get("organization")
    if not organization:
        raise ValueError("'overview.organization' is required")
    return OverviewSettings(
        trello=_trello_settings(config, section),
        organization=str(organization),
        project_prefix=str(section.get("project_prefix", "Project: ")),
        doer_prefix=str(section.get("doer_prefix", "Doer: ")),
        excluded_boards=tuple(str(board) for board in section.get("excluded_boards") or []),
        debug=_debug(config, section),
    )
