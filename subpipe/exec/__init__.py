"""
Execution module for subpipe.
Handles the running instances produced when nodes are started.
"""

from .running import (
    RunningInstance,
    RunningProcess,
    RunningThread,
    RunningPipe,
    RunningEmpty,
)

__all__ = [
    "RunningInstance",
    "RunningProcess",
    "RunningThread",
    "RunningPipe",
    "RunningEmpty",
]
