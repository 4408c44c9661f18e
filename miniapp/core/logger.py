"""
Logging configuration using Loguru.

Provides colorized console logging in development and rotated file logging
in production.
"""
import sys
from pathlib import Path
from loguru import logger

from miniapp.config import settings


def setup_logging() -> None:
    """
    Configure loguru logger with appropriate handlers and formatting.

    Development mode:
    - Colorized console output with file:line info
    - Backtraces and variable diagnosis

    Production mode:
    - Plain console output (for container logs)
    - File output with rotation
    """

    # Remove default handler
    logger.remove()

    dev_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<magenta>{extra[event]}</magenta> | "
        "<level>{message}</level>"
    )

    prod_format = (
        "{time:YYYY-MM-DD HH:mm:ss} | "
        "{level: <8} | "
        "{name}:{function}:{line} | "
        "{extra[event]} | "
        "{message}"
    )

    # Records logged without an event still need the format key
    logger.configure(extra={"event": "-"})

    logger.add(
        sys.stdout,
        format=dev_format if settings.debug else prod_format,
        level=settings.log_level,
        colorize=settings.debug,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    # File handler (production only)
    if not settings.debug:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(exist_ok=True)

        logger.add(
            log_dir / "miniapp.log",
            format=prod_format,
            level="INFO",
            rotation="500 MB",
            retention="10 days",
            compression="zip",
            enqueue=True,
        )

    logger.info(f"Logging configured - Level: {settings.log_level}")
    logger.debug(f"Debug mode: {settings.debug}")
