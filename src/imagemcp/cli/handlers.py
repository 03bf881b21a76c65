"""
Error handling for the CLI.

Maps library exceptions to exit codes and user messages so the command
bodies stay free of try/except for known errors.
"""

import sys
from collections.abc import Callable

import click

from imagemcp.cli import progress
from imagemcp.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_VALIDATION_OR_CONFIG,
)
from imagemcp.core.messages_loader import get_suggestion
from imagemcp.render import error_category
from imagemcp.utils.exceptions import (
    BatchProcessingError,
    ConfigurationError,
    FileSystemError,
    ImageMcpError,
    ImageProcessingError,
    InputLoadError,
    InvalidOptionError,
    ValidationError,
)


def map_exception_to_exit(exc: BaseException) -> tuple[int, str]:
    """Map library and known exceptions to (exit_code, user_message)."""
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, ConfigurationError):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid configuration.")
    if isinstance(exc, (InputLoadError, ImageProcessingError, InvalidOptionError)):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid input.")
    if isinstance(exc, BatchProcessingError):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid batch settings.")
    if isinstance(exc, FileSystemError):
        msg = exc.args[0] if exc.args else "File operation failed."
        if exc.path:
            msg = f"{msg} (path: {exc.path})"
        return (EXIT_API_OR_NETWORK, msg)
    if isinstance(exc, KeyboardInterrupt):
        return (EXIT_CANCELLED, "Cancelled.")
    if isinstance(exc, ImageMcpError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "An error occurred.")
    # Unhandled
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.")


def _suggestion(exc: BaseException) -> str:
    explicit = getattr(exc, "suggestion", "")
    if explicit:
        return explicit
    try:
        return get_suggestion(error_category(exc)[0])
    except ConfigurationError:
        return ""


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
    debug: bool = False,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.
    """
    try:
        fn()
    except KeyboardInterrupt as e:
        code, msg = map_exception_to_exit(e)
        if not quiet:
            progress.print_warning(msg)
        sys.exit(code)
    except ImageMcpError as e:
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
            hint = _suggestion(e)
            if hint:
                progress.print_info(hint)
        sys.exit(code)
    except Exception as e:
        if debug:
            raise
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(EXIT_API_OR_NETWORK)


__all__ = [
    "map_exception_to_exit",
    "run_with_error_handling",
]
