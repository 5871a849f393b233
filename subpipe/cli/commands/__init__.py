"""CLI command handlers."""

from .run import run_script_command

__all__ = ['run_script_command']
