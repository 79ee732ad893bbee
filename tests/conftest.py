"""Shared pytest fixtures."""

import logging

import pytest

from hireos_sync.utils.logging import MATCHING_LOGGER_NAME, ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_hireos_loggers():
    """Undo handler and propagation changes made by setup_logging()."""
    yield
    for name in (ROOT_LOGGER_NAME, MATCHING_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Point config, logs and credentials away from the real home directory."""
    for name in (
        "GHL_API_KEY",
        "GHL_LOCATION_ID",
        "GHL_CLIENT_ID",
        "GHL_CLIENT_SECRET",
        "HIREOS_SYNC_CONFIG_DIR",
        "HIREOS_SYNC_CONFIG_FILE",
        "HIREOS_SYNC_LOG_LEVEL",
        "HIREOS_SYNC_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HIREOS_SYNC_LOG_FILE", "none")
    return tmp_path
