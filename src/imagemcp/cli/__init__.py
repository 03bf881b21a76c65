"""
Command-line interface for imagemcp.

This package contains CLI implementations using Click.
"""

from imagemcp.cli.commands import cli, main

__all__ = ["cli", "main"]
