"""
Logging setup shared by the CLI and by embedding applications.

The library itself only logs through loguru's ``logger``; sinks are installed
here, once, by whoever owns the process.
"""

import sys

from loguru import logger


def setup_logging(
    verbose: bool = False, enable_trace: bool = False, level: str = "INFO"
) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
        level: Base level when neither flag is set (usually from config)
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
    elif verbose:
        log_level = "DEBUG"
    else:
        log_level = level.upper()

    if log_level in ("TRACE", "DEBUG"):
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Log a fatal error, with the full traceback in TRACE mode.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    logger.trace(f"Error context: {context}")
    logger.trace(f"Error type: {type(error).__name__}")
    logger.opt(exception=error).trace("Full traceback:")

    logger.critical(f"💥 {context}: {type(error).__name__}: {error}")
