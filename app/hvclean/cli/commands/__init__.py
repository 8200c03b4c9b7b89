"""CLI commands for hvclean.

This package contains all subcommand implementations.
"""

from hvclean.cli.commands import config, scan

__all__ = ["config", "scan"]
