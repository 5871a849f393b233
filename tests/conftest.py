"""Shared fixtures and helpers for subpipe tests."""

import os
import shutil

import pytest

from subpipe.variables import Environment


def has_cli(command: str) -> bool:
    """Check if a CLI command is available."""
    return shutil.which(command) is not None


def skip_if_no_cli(*commands: str) -> None:
    """Skip test if any of the CLI commands is not available."""
    for command in commands:
        if not has_cli(command):
            pytest.skip(f"{command} not available")


def open_fd_count() -> int:
    """Number of descriptors currently open in this process."""
    if not os.path.isdir("/proc/self/fd"):
        pytest.skip("/proc/self/fd not available")
    return len(os.listdir("/proc/self/fd"))


@pytest.fixture
def env():
    """A mutable copy of the process environment."""
    return Environment(Environment.snapshot())
