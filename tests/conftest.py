"""
Pytest configuration and shared fixtures for all tests.

This module provides shared fixtures for the test suite, including:
- An isolated credentials folder (SPIKE_MASTODON_CONFIG_DIR) per test
- Environment cleanup for the logging and debug variables
- Root logger handler cleanup so configure_logging() never leaks handlers
- A sample Credentials record
"""

import logging

import pytest

from credentials import Credentials


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Point the credentials folder at a per-test temporary directory."""
    folder = tmp_path / "config"
    monkeypatch.setenv("SPIKE_MASTODON_CONFIG_DIR", str(folder))
    monkeypatch.delenv("SPIKE_MASTODON_LOG", raising=False)
    monkeypatch.delenv("SPIKE_MASTODON_DEBUG", raising=False)
    return folder


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Restore root logger level and handlers after each test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield

    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)


@pytest.fixture
def sample_credentials():
    return Credentials(
        base="https://mastodon.social",
        client_id="client-id-123",
        client_secret="client-secret-456",
        redirect="urn:ietf:wg:oauth:2.0:oob",
        token="access-token-789",
    )
