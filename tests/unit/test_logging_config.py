"""Unit tests for logging setup."""

import io
import logging
import sys
from unittest.mock import patch

import pytest

from shadowcrypt.core.logging_config import PACKAGE_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def restore_package_level():
    logger = logging.getLogger(PACKAGE_LOGGER)
    previous = logger.level
    yield
    logger.setLevel(previous)


def test_configure_logging_defaults():
    with patch("logging.basicConfig") as mock_config:
        configure_logging()

    kwargs = mock_config.call_args.kwargs
    assert kwargs["level"] == logging.WARNING
    assert kwargs["stream"] is sys.stdout
    assert "%(name)s" in kwargs["format"]
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO


def test_configure_logging_custom_level_and_stream():
    stream = io.StringIO()
    with patch("logging.basicConfig") as mock_config:
        configure_logging(logging.DEBUG, stream=stream)

    assert mock_config.call_args.kwargs["stream"] is stream
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
    assert logging.getLogger("shadowcrypt.security.protocol").isEnabledFor(logging.DEBUG)
