"""Logging utilities with rich console output.

Every module gets its logger from here so that extraction runs, connector
diagnostics and batch retries all render through the same rich console.

Usage:
    from common.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Fetched 12 commits")
    logger.warning("Retry attempt 1/2 for batch 3...")
    logger.error("Failed to process batch", exc_info=True)
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def _build_rich_handler(show_time: bool = False, show_path: bool = False) -> RichHandler:
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        tracebacks_show_locals=True,
        markup=True,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    return handler


def get_logger(
    name: str,
    level: str | None = None,
    show_time: bool = False,
    show_path: bool = False,
) -> logging.Logger:
    """Get a configured logger with rich output.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, uses LOG_LEVEL from the environment or defaults to INFO.
        show_time: Show timestamp in log output
        show_path: Show file path in log output

    Returns:
        Configured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Processing batch 1/3 (10 items)...")
        Processing batch 1/3 (10 items)...
    """
    logger = logging.getLogger(name)

    # Already configured by an earlier call
    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")

    logger.setLevel(level.upper())
    logger.addHandler(_build_rich_handler(show_time=show_time, show_path=show_path))

    # pytest caplog captures through propagation
    logger.propagate = True

    return logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging once at the CLI entry point.

    Loggers from get_logger already print through rich, so the root logger
    only receives the optional file handler. LOG_LEVEL overrides `level`.

    Args:
        level: Default logging level for all modules
        log_file: Optional file path to also write plain-text logs to

    Example:
        from common.logger import setup_logging

        def main():
            setup_logging(level="INFO")
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(level)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)


def progress(message: str) -> None:
    """Print a progress line without the logger prefix."""
    console.print(message)


def success(message: str) -> None:
    """Print a success message with a green checkmark.

    Example:
        >>> success("Extraction complete!")
        ✓ Extraction complete!
    """
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    """Print a warning message with a yellow warning icon."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print an error message with a red X to stderr."""
    Console(stderr=True).print(f"[red]✗[/red] {message}")
