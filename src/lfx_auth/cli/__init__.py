"""Command-line interface for lfx-auth.

Provides commands for resolving identifiers into directory users and for
updating the caller's user metadata.
"""

from .main import cli, main

__all__ = ["cli", "main"]
