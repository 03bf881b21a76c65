"""
Logging configuration for imagemcp.

Logging is configured lazily: library users who never call set_verbosity or
configure_logging get no output unless they configure logging themselves.
All output goes to stderr because stdout carries the stdio tool transport.

Verbosity levels:
- 0 (default): INFO: saves, batches and timing only
- 1 (info): INFO + prompt text
- 2 (verbose): DEBUG + prompt text: HTTP calls, naming and retry decisions

IMAGEMCP_VERBOSITY env (0/1/2) is read when the CLI or server starts;
CLI flags override env.
"""

import logging
import os
import sys

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "imagemcp"

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    """Add a stderr handler to the root imagemcp logger if not already present."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    - 0: INFO level; activity and timing only (no prompt text).
    - 1: INFO level; same + prompt text.
    - 2: DEBUG level; same + HTTP request/response detail (no secrets).
    """
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if level <= 0:
        root.setLevel(logging.INFO)
        _log_prompts = False
    elif level == 1:
        root.setLevel(logging.INFO)
        _log_prompts = True
    else:
        root.setLevel(logging.DEBUG)
        _log_prompts = True


def log_prompts() -> bool:
    """Return True if prompt text should be logged (verbosity 1 or 2)."""
    return _log_prompts


def _divert_stdout_handlers() -> None:
    """Point any handler writing to stdout at stderr so tool frames stay clean."""
    for logger in (logging.getLogger(), logging.getLogger(ROOT_LOGGER_NAME)):
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stdout:
                handler.setStream(sys.stderr)


def configure_logging(
    verbose_level: int = 0, quiet: bool = False, stdio_transport: bool = False
) -> None:
    """
    Configure logging from the CLI, the server, or library code.

    When quiet is True, sets level to WARNING (only retries, swallowed save
    failures and errors). Otherwise calls set_verbosity(verbose_level).
    With stdio_transport, handlers installed by the host on stdout are moved
    to stderr, since stdout carries the JSON-RPC stream.
    """
    global _log_prompts
    _ensure_handler()
    if stdio_transport:
        _divert_stdout_handlers()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if quiet:
        root.setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """
    Read IMAGEMCP_VERBOSITY from environment (0, 1, or 2).

    Invalid or missing values return 0.
    """
    raw = os.environ.get("IMAGEMCP_VERBOSITY", "0").strip()
    if raw == "1":
        return 1
    if raw == "2":
        return 2
    return 0


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under imagemcp (e.g. imagemcp.files.manager)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "set_verbosity",
]
