"""Logging setup and secret masking."""

from __future__ import annotations

import logging
import sys
from typing import TextIO


def setup_logging(
    level: int = logging.WARNING,
    logger_name: str = "osm-submit",
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the package logger once and return it.

    Logs go to stderr by default so that stdio transports keep stdout clean.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    if not any(getattr(h, "_osm_submit", False) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        handler._osm_submit = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def mask_sensitive(text: str | None, keep_chars: int = 4) -> str:
    """Mask all but the first *keep_chars* characters of a secret.

    >>> mask_sensitive("abcdefgh", 2)
    'ab******'
    """
    if not text:
        return ""
    if len(text) <= keep_chars * 2:
        return "*" * len(text)
    return text[:keep_chars] + "*" * (len(text) - keep_chars)
