"""Command-line interface for pageshot."""

from .main import app, cli_main

__all__ = ['app', 'cli_main']
