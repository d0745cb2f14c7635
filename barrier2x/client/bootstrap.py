"""Client bootstrap helpers for config, display, and engine resolution."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from barrier2x.client.config_store import ConfigStore
from barrier2x.common.config import ConfigLoader, Configuration, LoggingConfig
from barrier2x.common.types import Screen
from barrier2x.engine.host import EngineFactory
from barrier2x.engine.loader import engineFactory_load
from barrier2x.x11.display import DisplayManager

logger = logging.getLogger(__name__)


def configPath_resolve(args: argparse.Namespace) -> Path:
    """
    Resolve the configuration file from `--config` or the standard locations.

    Args:
        args: Parsed CLI args.

    Returns:
        Config file path.
    """
    explicit: Optional[Path] = Path(args.config) if args.config else None
    try:
        return ConfigLoader.configPath_resolve(explicit)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Create a barrier2x.yml file or specify path with --config", file=sys.stderr)
        sys.exit(1)


def configData_load(config_path: Path) -> dict[str, Any]:
    """
    Read the raw configuration dictionary.

    Args:
        config_path: Config file path.

    Returns:
        Parsed YAML dictionary.
    """
    try:
        return ConfigLoader.yaml_load(config_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)


def loggingWithConfig_setup(
    args: argparse.Namespace,
    data: dict[str, Any],
    logging_setup_func: Callable[[str, str, Optional[str]], None],
) -> None:
    """
    Setup client logging from config and optional CLI override.

    Args:
        args: Parsed CLI args.
        data: Raw config dictionary.
        logging_setup_func: Logging setup callback.
    """
    try:
        logging_config: LoggingConfig = ConfigLoader.logging_parse(data)
        log_level: str = getattr(args, "log_level", None) or logging_config.level
        logging_setup_func(log_level, logging_config.format, logging_config.file)
    except (OSError, ValueError) as e:
        print(f"Error configuring logging: {e}", file=sys.stderr)
        sys.exit(1)


def displayConnection_establish(display_manager: DisplayManager) -> Screen:
    """
    Establish the X display connection and verify XTest.

    Args:
        display_manager: X11 display manager.

    Returns:
        Screen geometry.
    """
    try:
        display_manager.connection_establish()
        screen: Screen = display_manager.screenGeometry_get()
    except Exception as e:
        logger.error("Failed to connect to X11 display: %s", e)
        sys.exit(1)

    logger.info("Screen geometry: %sx%s", screen.width, screen.height)
    if not display_manager.xtestExtension_verify():
        logger.error("XTest extension not available, cannot inject events")
        display_manager.connection_close()
        sys.exit(1)
    logger.info("XTest extension verified, event injection ready")
    return screen


def configStore_create(
    args: argparse.Namespace, config_path: Path, data: dict[str, Any], screen: Screen
) -> ConfigStore:
    """
    Validate the configuration and create the snapshot store.

    Args:
        args: Parsed CLI args.
        config_path: Config file path.
        data: Raw config dictionary, validated before the store takes over.
        screen: Local screen geometry.

    Returns:
        Config store with CLI overrides registered.
    """
    try:
        ConfigLoader.config_parse(data, screen)
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    return ConfigStore(
        config_path,
        screen,
        server_address=args.server,
        client_name=args.name,
        server_keymap=args.keymap,
        engine=args.engine,
    )


def engineFactory_resolve(config: Configuration) -> EngineFactory:
    """
    Load the protocol engine factory named by the configuration.

    Args:
        config: Active configuration snapshot.

    Returns:
        Engine factory callable.
    """
    if not config.engine:
        logger.error("No protocol engine configured; set 'engine' in the config or pass --engine")
        sys.exit(1)
    try:
        return engineFactory_load(config.engine)
    except (ImportError, AttributeError, ValueError) as e:
        logger.error("Failed to load protocol engine %s: %s", config.engine, e)
        sys.exit(1)
