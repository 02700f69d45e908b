# =============================================================================
# POLYMARKET CLAIM VALIDATOR - LOGGING CONFIGURATION
# =============================================================================
#
# Operational logs only. The audit trail of claim decisions is written by
# claim_validator/audit_log.py and is never routed through these handlers.
#
# Operational logs go to logs/claim_validator/ (one file per process start).
#
# =============================================================================

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "claim_validator"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def _get_log_dir() -> Path:
    return _get_project_root() / "logs" / "claim_validator"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    console_output: bool = True,
    file_output: bool = True,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure the claim_validator logger tree.

    claim_validator modules log through logging.getLogger(__name__), so
    configuring the package root covers the whole pipeline.

    Args:
        level: Logging level (int or name such as "DEBUG")
        console_output: Whether to log to console
        file_output: Whether to log to a timestamped file
        log_dir: Override for the log directory

    Returns:
        Path of the log file, or None if file output is disabled
    """
    level = _resolve_level(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_file = None
    if file_output:
        directory = Path(log_dir) if log_dir is not None else _get_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = directory / f"claim_validator_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized for {ROOT_LOGGER_NAME}")
    if log_file is not None:
        logger.info(f"Log file: {log_file}")

    return log_file


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the package logger, or a child of it."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)
