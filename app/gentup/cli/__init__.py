"""CLI package for gentup.

This package contains the Typer application.
"""

from gentup.cli.main import app

__all__ = ["app"]
