"""
Logging for the content analysis engine.

Every module logs through a child of the "content_analysis" logger, so one
call to setup_logger() (ContentAnalyzer does it when given log_level, the
CLI does it through --verbose) controls the whole pipeline's output.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "content_analysis"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call repeatedly: analyzers built with a log_level re-level the
    existing handlers instead of stacking new ones.

    Args:
        name: Logger name (the package logger unless a caller wants its own)
        level: Logging level, e.g. AnalysisSettings.log_level
        log_file: Also write records to this file

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Package logger, configured with defaults at import time
logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Child logger for one pipeline module, e.g. "content_analysis.extractor".

    Records propagate to the package logger's handlers, and the name shows
    which stage (preprocessor, extractor, indexer, ...) produced a message.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")
