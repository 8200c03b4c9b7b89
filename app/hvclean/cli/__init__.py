"""CLI package for hvclean.

This package contains the Typer application and all subcommands.
"""

from hvclean.cli.main import app

__all__ = ["app"]
