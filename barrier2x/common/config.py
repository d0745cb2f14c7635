"""Configuration file loading and management"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from barrier2x.common.types import KeymapVariant, Screen

DEFAULT_CLIENT_NAME = "barrier2x"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Configuration:
    """Adapter configuration snapshot, replaced wholesale on reload"""
    enabled: bool
    server_address: str
    server_keymap: KeymapVariant
    client_name: str
    screen_width: int
    screen_height: int
    engine: Optional[str] = None  # "module:factory" path of the protocol engine

    def isAddressed(self) -> bool:
        """Check if the adapter is enabled and has a server to talk to"""
        return self.enabled and bool(self.server_address)

    @staticmethod
    def disabled_create(screen: Screen) -> "Configuration":
        """
        Build the snapshot used before any file has been read

        Args:
            screen: Local screen geometry

        Returns:
            Disabled configuration with no server address
        """
        return Configuration(
            enabled=False,
            server_address="",
            server_keymap=KeymapVariant.GENERIC,
            client_name=DEFAULT_CLIENT_NAME,
            screen_width=screen.width,
            screen_height=screen.height,
        )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration settings"""
    level: str
    file: Optional[str]
    format: str


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "barrier2x.yml",
        "~/.config/barrier2x/config.yml",
        "/etc/barrier2x/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any], screen: Screen) -> Configuration:
        """
        Parse configuration dictionary into a Configuration snapshot

        Missing keys fall back to a disabled, unaddressed configuration.

        Args:
            data: Raw configuration dictionary
            screen: Local screen geometry, used unless the file overrides it

        Returns:
            Parsed Configuration object

        Raises:
            ValueError: If a value has the wrong type
        """
        enabled = data.get("enable", False)
        if not isinstance(enabled, bool):
            raise ValueError(f"'enable' must be a boolean, got {enabled!r}")

        server = data.get("server") or ""
        client_name = data.get("client_name") or DEFAULT_CLIENT_NAME
        keymap_value = data.get("server_keymap")

        return Configuration(
            enabled=enabled,
            server_address=str(server).strip(),
            server_keymap=KeymapVariant.fromSetting_parse(
                None if keymap_value is None else str(keymap_value)
            ),
            client_name=str(client_name),
            screen_width=ConfigLoader.dimension_parse(data, "screen_width", screen.width),
            screen_height=ConfigLoader.dimension_parse(data, "screen_height", screen.height),
            engine=data.get("engine"),
        )

    @staticmethod
    def dimension_parse(data: Dict[str, Any], key: str, default: int) -> int:
        """
        Parse an optional positive screen dimension

        Args:
            data: Raw configuration dictionary
            key: Dimension key
            default: Value used when the key is absent or null

        Returns:
            Dimension in pixels

        Raises:
            ValueError: If the value is not a positive integer
        """
        value = data.get(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"'{key}' must be a positive integer, got {value!r}")
        return value

    @staticmethod
    def logging_parse(data: Dict[str, Any]) -> LoggingConfig:
        """
        Parse the optional logging section

        Args:
            data: Raw configuration dictionary

        Returns:
            Logging configuration with defaults applied
        """
        logging_data = data.get("logging") or {}
        return LoggingConfig(
            level=logging_data.get("level", "INFO"),
            file=logging_data.get("file"),
            format=logging_data.get("format", DEFAULT_LOG_FORMAT),
        )

    @staticmethod
    def configPath_resolve(file_path: Optional[Path] = None) -> Path:
        """
        Resolve the configuration file path

        Args:
            file_path: Optional explicit path. If None, searches standard locations.

        Returns:
            Path to the configuration file

        Raises:
            FileNotFoundError: If no explicit path was given and none was found
        """
        if file_path is not None:
            return file_path
        found = ConfigLoader.configFile_find()
        if found is None:
            raise FileNotFoundError(
                f"Config file not found in standard locations: "
                f"{ConfigLoader.DEFAULT_CONFIG_PATHS}"
            )
        return found

    @staticmethod
    def config_load(file_path: Path, screen: Screen) -> Configuration:
        """
        Load configuration from file

        Args:
            file_path: Path to config file
            screen: Local screen geometry

        Returns:
            Parsed Configuration object

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config file is invalid
        """
        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data, screen)

    @staticmethod
    def overrides_apply(config: Configuration, **overrides: Any) -> Configuration:
        """
        Apply command-line overrides to a configuration snapshot

        Args:
            config: Snapshot loaded from file
            **overrides: Key-value pairs to override; None values are ignored

        Returns:
            New Configuration with overrides applied

        Example:
            config = ConfigLoader.overrides_apply(
                config,
                server_address="10.0.0.2",
                client_name="laptop",
            )
        """
        changes: Dict[str, Any] = {}
        if overrides.get("server_address") is not None:
            changes["server_address"] = overrides["server_address"]
            changes["enabled"] = True
        if overrides.get("client_name") is not None:
            changes["client_name"] = overrides["client_name"]
        if overrides.get("server_keymap") is not None:
            changes["server_keymap"] = KeymapVariant.fromSetting_parse(overrides["server_keymap"])
        if overrides.get("engine") is not None:
            changes["engine"] = overrides["engine"]
        if not changes:
            return config
        return replace(config, **changes)

    @staticmethod
    def configWithOverrides_load(
        file_path: Path,
        screen: Screen,
        **overrides: Any
    ) -> Configuration:
        """
        Load configuration and apply command-line overrides

        Args:
            file_path: Path to config file
            screen: Local screen geometry
            **overrides: Key-value pairs to override config values

        Returns:
            Configuration object with overrides applied
        """
        config = ConfigLoader.config_load(file_path, screen)
        return ConfigLoader.overrides_apply(config, **overrides)
