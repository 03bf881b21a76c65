"""
Utility functions for the CLI.

This module contains exit code constants and small option helpers shared by
the CLI commands.
"""

from imagemcp.logging_config import get_verbosity_from_env

# Exit codes (130 = common for SIGINT)
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2
EXIT_CANCELLED = 130


def effective_verbosity(verbose_count: int) -> int:
    """CLI -v flags override IMAGEMCP_VERBOSITY; capped at 2."""
    return min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "EXIT_CANCELLED",
    "effective_verbosity",
]
