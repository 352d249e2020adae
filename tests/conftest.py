"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration).
"""

import logging

import pytest

from publish_confluence.cli.main import APP_LOGGER


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Remove handlers the CLI attaches to the application logger.

    Commands configure the 'publish_confluence' logger on every invocation;
    without this, a stream handler bound to one test's captured stderr
    would leak into the next test.
    """
    yield
    app_logger = logging.getLogger(APP_LOGGER)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture
def clean_confluence_env(monkeypatch):
    """Environment without any Confluence credential variables."""
    for name in ("CONFLUENCE_URL", "CONFLUENCE_USER", "CONFLUENCE_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
