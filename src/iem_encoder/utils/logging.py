"""
Structured Logging for iem_encoder
==================================

Rich-powered console logging with an optional plain-text file logger
for batch runs.

Design Principles:
    - Library modules only call ``get_logger(__name__)``; the CLI decides
      the level and whether a log file is written
    - Pipe-delimited key=value format for structured log messages
    - Colour-coded severity levels for fast visual scanning

Severity Levels:
    info     (cyan)     — routine progress
    ok       (green)    — successful completion
    warn     (yellow)   — recoverable issues (low-confidence fits)
    error    (red)      — failures
    metric   (magenta)  — quantitative results (variance explained, MSE, ...)

Usage::

    from iem_encoder.utils.logging import get_logger, log

    logger = get_logger(__name__)
    logger.info("fit | trials=3600 channels=8 voxels=50")
    log("decode | spread=7.3 accuracy=0.41", severity="metric")
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

SEVERITY_COLORS = {
    "info":   "cyan",
    "ok":     "green",
    "warn":   "yellow",
    "error":  "red",
    "metric": "magenta",
}

_PLAIN_FORMAT = "[%(asctime)s] %(levelname)-7s %(name)s — %(message)s"

_console = Console(stderr=True)
_configured = False


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str | Path] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Installs a Rich console handler and, when ``log_dir`` is given, a
    plain-text file handler.  Safe to call multiple times (idempotent).

    Args:
        level:    Log level string (DEBUG, INFO, WARNING, ERROR).
        log_dir:  Directory for log files.  Created if needed.
        log_file: Log filename.  Defaults to ``iem_encoder_<timestamp>.log``.
    """
    global _configured

    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    console_handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        show_path=False,
        markup=True,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        if log_file is None:
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = f"iem_encoder_{ts}.log"
        fh = logging.FileHandler(log_dir / log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter(_PLAIN_FORMAT))
        root.addHandler(fh)

    _configured = True


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a module logger.

    Args:
        name:  Logger name (typically ``__name__``).
        level: Per-logger level override.

    Returns:
        ``logging.Logger`` instance.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def log(msg: str, severity: str = "info") -> None:
    """
    Quick-log a message with a severity tag.

    Args:
        msg:      Pipe-delimited message (e.g. ``"fit | voxels=50 ve=0.93"``).
        severity: One of info, ok, warn, error, metric.
    """
    logger = get_logger("iem_encoder")
    colour = SEVERITY_COLORS.get(severity, "white")

    if severity == "error":
        logger.error(msg)
    elif severity == "warn":
        logger.warning(msg)
    else:
        logger.info(f"[{colour}]{msg}[/{colour}]")
