"""
Quote Engine Logging Setup

Library modules only create ``logging.getLogger(__name__)`` loggers. The
host application calls ``setup_logging`` once to attach a handler.
"""
from __future__ import annotations
from typing import Optional
import logging
import os

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure the root logger from ``level`` or the LOG_LEVEL env var."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, resolved, logging.INFO))

    if not any(getattr(h, "_quote_engine", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        handler._quote_engine = True
        root.addHandler(handler)

    return root
