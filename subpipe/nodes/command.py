"""
External command node.

Launches a program in a child process with its standard streams inherited,
connected to new pipes, or connected to descriptors supplied by the caller.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Tuple, Union

from ..exceptions import SystemCallError
from ..exec.running import RunningInstance, RunningProcess
from ..status import FAILURE
from ..streams import (
    Capabilities,
    Capability,
    PipeEnds,
    Streams,
    actual_stream,
    close_fd,
    open_pipe,
)
from ..variables.environment import Environment
from ..variables.providers import Provider, Var, make_provider
from .base import Node


logger = logging.getLogger(__name__)


def _close_created(ends: List[PipeEnds]) -> None:
    for stream_ends in ends:
        stream_ends.close_all()


@dataclass(frozen=True)
class Exec(Node):
    """
    An external program, found through the PATH of the environment.

    The argv values are resolved when the node starts. Only exportable
    variables are passed to the child.
    """
    argv: Tuple[Provider, ...]

    capabilities = Capabilities(
        stdin=Capability.ANY,
        stdout=Capability.ANY,
        stderr=Capability.ANY,
    )

    def __init__(self, *argv: Union[str, Var, Provider]):
        if not argv:
            raise ValueError("exec requires a program name")
        object.__setattr__(self, "argv", tuple(make_provider(arg) for arg in argv))

    def clone(self) -> Node:
        return Exec(*self.argv)

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        args = [arg.resolve(env) for arg in self.argv]
        child_env = env.child_env()

        ends: List[PipeEnds] = []
        try:
            ends.append(open_pipe(streams.stdin, worker_reads=True))
            ends.append(open_pipe(streams.stdout, worker_reads=False))
            ends.append(open_pipe(streams.stderr, worker_reads=False))
        except SystemCallError:
            _close_created(ends)
            raise
        stdin_ends, stdout_ends, stderr_ends = ends

        process = None
        status = None
        try:
            process = subprocess.Popen(
                args,
                stdin=stdin_ends.remote,
                stdout=stdout_ends.remote,
                stderr=stderr_ends.remote,
                env=child_env,
                close_fds=True,
            )
        except OSError as e:
            if e.filename is None:
                # Spawning itself failed; nothing was launched.
                _close_created(ends)
                raise SystemCallError.from_os_error(e) from e
            # The child could not execute the program: report it as the exit status.
            logger.error(f"Failed to execute {args[0]}: {e}")
            status = e.errno or FAILURE
        except Exception:
            # Rejected before launch (e.g. a NUL byte in argv or env).
            _close_created(ends)
            raise

        # The child owns these now, accepted descriptors included; the parent
        # keeps only the local ends.
        for fd in {stream_ends.remote for stream_ends in ends}:
            close_fd(fd)

        if process is not None:
            logger.debug(f"Started pid {process.pid}: {args}")

        actual = Streams(
            stdin=actual_stream(streams.stdin, stdin_ends),
            stdout=actual_stream(streams.stdout, stdout_ends),
            stderr=actual_stream(streams.stderr, stderr_ends),
        )
        return RunningProcess(process, actual, status=status)


def exec_(*argv: Union[str, Var]) -> Node:
    return Exec(*argv)
