"""Structured logging configuration.

Pipelines bind the project they work on (`logger.bind(project_id=...)`) and
the CLI binds its subcommand; those fields show up in every console line and
in the `{extra}` column of the log file.
"""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

# Bound fields echoed on the console, in this order
CONTEXT_FIELDS = ("project_id", "segment_id", "command")

CONSOLE_PREFIX = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>"


def console_format(record: dict) -> str:
    """
    Build the console format for one record.

    Context values are referenced as `{extra[...]}` placeholders, never
    inlined, so braces inside ids cannot break formatting.
    """
    context = "".join(
        f" <magenta>[{field}={{extra[{field}]}}]</magenta>" for field in CONTEXT_FIELDS if field in record["extra"]
    )
    return CONSOLE_PREFIX + context + " | <level>{message}</level>\n{exception}"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru with a console handler and an optional rotating file.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file (settings.log_file)
        rotation: Log rotation size
        retention: Log retention period
    """
    logger.remove()

    logger.add(sys.stderr, format=console_format, level=log_level, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message} | {extra}",
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
        )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a logger with bound context.

    Args:
        name: Logger name (typically __name__)
        **context: Any of CONTEXT_FIELDS (project_id, segment_id, command) or
            other fields that should only reach the log file

    Returns:
        Logger instance with bound context
    """
    return logger.bind(name=name, **context)


# Every record needs extra[name] for the format strings above
logger.configure(extra={"name": "scriptboard"})
setup_logging()
