import logging

import pytest

from smsvoice import config

TEST_AWS_ACCESS_KEY_ID = "test"
TEST_AWS_SECRET_ACCESS_KEY = "test"
TEST_AWS_REGION_NAME = "us-east-1"


@pytest.fixture(autouse=True)
def set_boto_test_credentials_and_region(monkeypatch):
    """
    Automatically sets the default credentials and region for all tests.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", TEST_AWS_ACCESS_KEY_ID)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", TEST_AWS_SECRET_ACCESS_KEY)
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_AWS_REGION_NAME)


@pytest.fixture(autouse=True)
def fast_status_polling(monkeypatch):
    """
    Shortens the pause between two status checks, so waiting for status transitions is quick.
    """
    monkeypatch.setattr(config, "STATUS_POLL_INITIAL_INTERVAL", 0.01)
    monkeypatch.setattr(config, "STATUS_POLL_MAX_INTERVAL", 0.02)
    monkeypatch.setattr(config, "STATUS_NOT_FOUND_CHECKS", 2)


@pytest.fixture(autouse=True)
def restore_logging():
    """
    Restores the logging configuration after each test, and resets the one-time logging setup done by
    the resource provider executor.
    """
    from smsvoice.logging.setup import setup_logging_once

    root = logging.getLogger()
    handlers = list(root.handlers)
    levels = {
        name: logging.getLogger(name).level
        for name in ("", "smsvoice", "smsvoice.utils.sync", "boto3", "botocore", "urllib3", "plux")
    }
    yield
    root.handlers = handlers
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
    logging.captureWarnings(False)
    setup_logging_once.clear()
