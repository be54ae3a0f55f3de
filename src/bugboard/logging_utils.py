"""Unified logging utilities for bugboard.

This module centralizes logging setup and timing helpers so every stage can emit:
  - system-readable logs (system.log)
  - user-readable logs (user_readable.log)
  - per-stage timings (reported through the user logger)

Design constraints:
  - No imports of stage modules to avoid circular dependencies.
  - Graceful degradation: if file handlers fail, keep console logging.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Optional

from .common.config_validator import BugboardConfig


SYSTEM_FMT = "[%(asctime)s] [%(levelname)s] %(message)s"
HUMAN_FMT = "%(message)s"
USER_LOGGER_NAME = "bugboard.user"


def _ensure_logs_dir(config: Optional[BugboardConfig]) -> Optional[Path]:
    if config is None:
        return None
    logs_dir = Path(config.paths.logs_dir).expanduser().resolve()
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, fmt: str, level: int) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt))
        logger.addHandler(fh)
    except OSError as exc:
        # Fall back to console-only
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def _level(config: Optional[BugboardConfig]) -> int:
    name = config.logging.level if config is not None else "INFO"
    return getattr(logging, name, logging.INFO)


def get_logger(name: str, config: Optional[BugboardConfig] = None) -> logging.Logger:
    """Return a system logger with console + file handlers.

    - File: system.log under ``paths.logs_dir`` (skipped when no config is given)
    - Console: same format
    - Level: ``logging.level`` from config, INFO by default
    """
    level = _level(config)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Reset handlers to avoid duplication across repeated initializations
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)

    logs_dir = _ensure_logs_dir(config)
    if logs_dir is not None:
        _safe_add_file_handler(logger, logs_dir / "system.log", SYSTEM_FMT, level)
    return logger


def get_user_logger(config: Optional[BugboardConfig] = None) -> logging.Logger:
    """Return a user-friendly logger that writes to user_readable.log and console.

    This is where ingestion outcomes ("Successfully uploaded 3 new bugs!") land.
    """
    logger = logging.getLogger(USER_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.handlers = []
    logger.propagate = False

    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter(HUMAN_FMT))
    logger.addHandler(sh)

    logs_dir = _ensure_logs_dir(config)
    if logs_dir is not None:
        _safe_add_file_handler(logger, logs_dir / "user_readable.log", HUMAN_FMT, logging.INFO)
    return logger


def start_stage_timer(stage_name: str) -> float:
    """Start a timer for a pipeline stage and return the perf counter."""
    return time.perf_counter()


def end_stage_timer(stage_name: str, start_time: float, timing_dict: Dict[str, float], logger: Optional[logging.Logger] = None) -> float:
    """End timer, record milliseconds into ``timing_dict`` and log at DEBUG."""
    elapsed_ms = (time.perf_counter() - float(start_time)) * 1000.0
    timing_dict[stage_name] = elapsed_ms
    if logger is not None:
        logger.debug("Stage %s completed in %.1f ms", stage_name, elapsed_ms)
    return elapsed_ms


def log_system_event(logger: logging.Logger, message: str):
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str):
    logger.warning("[WARNING] %s", message)


def log_error(logger: logging.Logger, message: str):
    logger.error("[ERROR] %s", message)
