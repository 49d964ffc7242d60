"""Logging setup for applications embedding ShadowCrypt."""

import logging
import sys
from typing import Optional, TextIO


PACKAGE_LOGGER = "shadowcrypt"


def configure_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> None:
    # Root stays at WARNING; only the package logger follows ``level``
    # (encrypt/decrypt timings are emitted at DEBUG).
    logging.basicConfig(
        level=logging.WARNING,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=stream if stream is not None else sys.stdout,
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
