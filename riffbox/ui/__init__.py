"""
UI package for Riffbox.

This package provides the command-line interface and its progress display.
"""

from riffbox.ui.cli import CLI
from riffbox.ui.progress_display import RichProgressManager

__all__ = [
    'CLI',
    'RichProgressManager',
]
