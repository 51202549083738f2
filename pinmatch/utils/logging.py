"""
Logging setup for pinmatch.

Matching and clustering log from worker threads, so every format carries
the thread name. Debug runs switch the console to the long format with
module, function and line.
"""

import os
import sys
from pathlib import Path

from loguru import logger

from pinmatch.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{thread.name: <12}</magenta> | <level>{message}</level>"
)
DEBUG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<magenta>{thread.name}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}"


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> None:
    """
    Replace loguru's default handler with pinmatch's sinks.

    Args:
        level: Minimum level; defaults to PINMATCH_LOG_LEVEL
        log_file: File sink path; defaults to PINMATCH_LOG_FILE (none when unset)
        rotation: When the file sink rolls over
        retention: How long rolled files are kept
    """
    level = (level or settings.paths.log_level).upper()
    log_file = log_file or settings.paths.log_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=DEBUG_FORMAT if level == "DEBUG" else CONSOLE_FORMAT,
        colorize=True,
    )

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # Worker threads write concurrently; enqueue serializes file writes
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            enqueue=True,
        )

    logger.debug(f"Logging configured: level={level}, file={log_file or '-'}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
