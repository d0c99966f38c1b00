"""User-visible error reporting."""

import logging

from core.exceptions import ComposeException


def handle_error(error: BaseException, logger: logging.Logger) -> None:
    """
    Report ``error`` through ``logger``.

    Domain errors are shown as a one-line message (details at DEBUG);
    anything else is an unexpected error and keeps its traceback.
    """
    if isinstance(error, ComposeException):
        logger.error(f"Error: {error.message}")
        logger.debug(error.to_log_format())
        return

    logger.error(
        f"Unexpected error: {type(error).__name__}: {error}",
        exc_info=(type(error), error, error.__traceback__),
    )


__all__ = ["handle_error"]
