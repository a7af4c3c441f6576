import os

# set before any ticqr logger is created at import time
os.environ["LOG_TO_FILE"] = "0"

import pytest

from ticqr import config as ticqr_config


@pytest.fixture(autouse=True)
def quiet_config(monkeypatch, tmp_path):
    """Keep test runs from writing log files or debug overlays into the repo."""
    monkeypatch.setenv("LOG_TO_FILE", "0")
    monkeypatch.setenv("DEBUG", "0")
    monkeypatch.setenv("SAVE_DEBUG_OVERLAYS", "0")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    ticqr_config.reset_config()
    yield
    ticqr_config.reset_config()
