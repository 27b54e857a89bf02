"""Command-line interface module for the REAPER project parser.

This module provides the ``reaper-project`` tool for summarizing, querying,
listing and exporting project files.
"""

from .main import main

__all__ = ["main"]
