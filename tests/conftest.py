"""Shared fixtures: isolated configuration, metadata and log capture."""

import os
from pathlib import Path

import pytest

from pyrsx.core.config import Config, set_config
from pyrsx.engine.metadata import load_metadata, set_metadata
from pyrsx.utils.logger import LogLevel, MemoryHandler, get_logger


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts from defaults, without PYRSX_* from the environment."""
    for key in list(os.environ):
        if key.startswith("PYRSX_"):
            monkeypatch.delenv(key)
    config = Config()
    set_config(config)
    set_metadata(None)
    yield config
    set_config(None)
    set_metadata(None)


@pytest.fixture(scope="session")
def metadata():
    return load_metadata()


@pytest.fixture
def log_records():
    """Capture records from every pyrsx logger."""
    root = get_logger()
    handler = MemoryHandler(level=LogLevel.DEBUG)
    previous = root.level
    root.level = LogLevel.DEBUG
    root.add_handler(handler)
    yield handler
    root.remove_handler(handler)
    root.level = previous


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
