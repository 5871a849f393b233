"""
File redirection node.

Opening a file is synchronous: the opened descriptor is exposed directly on
the running instance, so an adjoining pipe wires to it without an extra OS pipe.
"""

import logging
import os
from dataclasses import dataclass
from enum import Flag
from typing import Union

from ..exceptions import SystemCallError
from ..exec.running import RunningEmpty, RunningInstance
from ..status import SUCCESS
from ..streams import ABSENT, Capabilities, Capability, StreamRequest, Streams
from ..variables.environment import Environment
from ..variables.providers import Provider, Var, make_provider
from .base import Node


logger = logging.getLogger(__name__)

DEV_NULL = os.devnull
DEV_ZERO = "/dev/zero"

# rw-r--r--
FILE_PERMISSIONS = 0o644


class FileMode(Flag):
    """How a file is opened. APPEND implies WRITE."""
    READ = 1
    WRITE = 2
    APPEND = 4

    READ_WRITE = READ | WRITE
    READ_APPEND = READ | WRITE | APPEND


def open_flags(mode: FileMode) -> int:
    """OS flags for a mode; files are always created if missing."""
    # os.open() descriptors are non-inheritable (close-on-exec).
    flags = os.O_CREAT
    if FileMode.READ in mode and FileMode.WRITE in mode:
        flags |= os.O_RDWR
        if FileMode.APPEND in mode:
            flags |= os.O_APPEND
    elif FileMode.WRITE in mode:
        flags |= os.O_WRONLY
        flags |= os.O_APPEND if FileMode.APPEND in mode else os.O_TRUNC
    else:
        flags |= os.O_RDONLY
    return flags


@dataclass(frozen=True)
class File(Node):
    """
    A file used as one end of a pipe.

    A writable file is a sink: it creates the descriptor the upstream node
    writes to (stdin slot). A readable file is a source: it creates the
    descriptor the downstream node reads from (stdout slot). The descriptor
    is only exposed in slots requested as NEW.
    """
    path: Provider
    mode: FileMode

    def __post_init__(self):
        object.__setattr__(self, "path", make_provider(self.path))
        mode = self.mode
        if FileMode.APPEND in mode:
            mode |= FileMode.WRITE
        if not mode:
            raise ValueError("File mode must include READ, WRITE or APPEND")
        object.__setattr__(self, "mode", mode)

    @property
    def capabilities(self) -> Capabilities:
        # A file on its own is just opened (and created or truncated).
        source_or_sink = Capability.CREATE | Capability.ABSENT
        return Capabilities(
            stdin=source_or_sink if FileMode.WRITE in self.mode else Capability.ABSENT,
            stdout=source_or_sink if FileMode.READ in self.mode else Capability.ABSENT,
        )

    def clone(self) -> Node:
        return File(self.path, self.mode)

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        path = self.path.resolve(env)
        try:
            fd = os.open(path, open_flags(self.mode), FILE_PERMISSIONS)
        except OSError as e:
            raise SystemCallError.from_os_error(e) from e

        logger.debug(f"Opened {path} ({self.mode}) as fd {fd}")
        opened = StreamRequest.existing(fd)
        actual = Streams(
            stdin=opened if streams.stdin.is_new else ABSENT,
            stdout=opened if streams.stdout.is_new else ABSENT,
        )
        if actual.stdin.is_absent and actual.stdout.is_absent:
            # Nobody takes the descriptor: the open only creates or truncates.
            os.close(fd)
        return RunningEmpty(actual, SUCCESS)


def open_file(path: Union[str, Var], mode: FileMode) -> Node:
    return File(path, mode)
