"""Pytest configuration and shared fixtures for barrier2x tests

This module provides common fixtures and test utilities used across
the unit tests.
"""

import logging
from pathlib import Path
from typing import Callable

import pytest

from barrier2x.client.config_store import ConfigStore
from barrier2x.common.types import Screen


SAMPLE_CONFIG = """
enable: true
server: 192.168.1.20
server_keymap: GENERIC
client_name: workstation
screen_width: 1920
screen_height: 1080
"""


@pytest.fixture
def screen() -> Screen:
    """Local screen geometry used when the config file sets none"""
    return Screen(width=1920, height=1080)


@pytest.fixture
def config_file_write(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing YAML text to a temporary config file

    Returns:
        Callable taking YAML text and returning the file path
    """
    config_path = tmp_path / "barrier2x.yml"

    def _write(text: str) -> Path:
        config_path.write_text(text)
        return config_path

    return _write


@pytest.fixture
def config_store(config_file_write, screen) -> ConfigStore:
    """Config store loaded from the sample configuration"""
    return ConfigStore(config_file_write(SAMPLE_CONFIG), screen)


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


# Markers for test organization
def pytest_configure(config) -> None:
    """Register custom pytest markers used by this test suite."""
    config.addinivalue_line("markers", "requires_x11: mark test as requiring X11 display")
