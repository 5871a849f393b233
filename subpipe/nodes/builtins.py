"""
In-process nodes: Capture ("read"), Emit ("echo"), and the constant
success/failure nodes.

Capture and Emit do their I/O on a background thread so that they present
the same wait-able handle as an external command.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Tuple, Union

from ..exceptions import ConfigurationError, VariableNotFound
from ..exec.running import RunningEmpty, RunningInstance, RunningThread
from ..status import FAILURE, SUCCESS
from ..streams import (
    Capabilities,
    Capability,
    PipeEnds,
    Streams,
    actual_stream,
    open_pipe,
)
from ..variables.environment import Environment
from ..variables.providers import Provider, Var, make_provider
from .base import Node


logger = logging.getLogger(__name__)

READ_CHUNK = 1000

# Undecodable bytes survive a capture/emit round trip.
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def _spawn(target: Callable[[], int], streams: Streams, ends: PipeEnds, name: str) -> RunningThread:
    try:
        return RunningThread(target, streams, name=name)
    except RuntimeError:
        ends.close_all()
        raise


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


@dataclass(frozen=True)
class Capture(Node):
    """
    Reads its stdin to end-of-stream and stores the text in a variable.

    Exactly one trailing newline is stripped. The variable is not exported
    to child processes.
    """
    name: str

    capabilities = Capabilities(stdin=Capability.CREATE | Capability.ACCEPT)

    def clone(self) -> Node:
        return Capture(self.name)

    def preflight(self, env: Environment) -> None:
        if env.read_only:
            raise ConfigurationError("Cannot write captured variable into a read-only environment")

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        ends = open_pipe(streams.stdin, worker_reads=True)
        fd = ends.remote
        name = self.name

        def reader() -> int:
            chunks = []
            try:
                while True:
                    chunk = os.read(fd, READ_CHUNK)
                    if not chunk:
                        break
                    chunks.append(chunk)
            except OSError as e:
                logger.error(f"Reading into {name} failed: {e}")
                return e.errno or FAILURE
            finally:
                os.close(fd)

            data = b"".join(chunks)
            if data.endswith(b"\n"):
                data = data[:-1]
            env.set(name, data.decode(TEXT_ENCODING, TEXT_ERRORS), exportable=False)
            return SUCCESS

        actual = Streams(stdin=actual_stream(streams.stdin, ends))
        return _spawn(reader, actual, ends, name=f"subpipe-read-{name}")


@dataclass(frozen=True)
class Emit(Node):
    """Writes its resolved values, space separated and newline terminated, to stdout."""
    values: Tuple[Provider, ...]

    capabilities = Capabilities(stdout=Capability.CREATE | Capability.ACCEPT)

    def __init__(self, *values: Union[str, Var, Provider]):
        object.__setattr__(self, "values", tuple(make_provider(v) for v in values))

    def clone(self) -> Node:
        return Emit(*self.values)

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        ends = open_pipe(streams.stdout, worker_reads=False)
        fd = ends.remote
        values = self.values

        def writer() -> int:
            try:
                for index, provider in enumerate(values):
                    if index:
                        _write_all(fd, b" ")
                    _write_all(fd, provider.resolve(env).encode(TEXT_ENCODING, TEXT_ERRORS))
                _write_all(fd, b"\n")
            except OSError as e:
                logger.error(f"Echo write failed: {e}")
                return e.errno or FAILURE
            except VariableNotFound as e:
                logger.error(f"Echo failed: {e}")
                return FAILURE
            finally:
                os.close(fd)
            return SUCCESS

        actual = Streams(stdout=actual_stream(streams.stdout, ends))
        return _spawn(writer, actual, ends, name="subpipe-echo")


class _Constant(Node):
    status = SUCCESS

    def clone(self) -> Node:
        return type(self)()

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        return RunningEmpty(Streams(), self.status)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AlwaysSucceed(_Constant):
    """Finishes immediately with status 0."""
    status = SUCCESS


class AlwaysFail(_Constant):
    """Finishes immediately with a fixed nonzero status."""
    status = FAILURE


true_ = AlwaysSucceed()
false_ = AlwaysFail()


def echo(*values: Union[str, Var]) -> Node:
    return Emit(*values)


def read(name: str) -> Node:
    return Capture(name)
