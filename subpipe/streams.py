"""
Stream negotiation between nodes.

Every node declares, for stdin, stdout and stderr, which kinds of descriptor
request it can honor. A request is checked against those capabilities before
any descriptor is opened, so a violation never needs cleanup.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum, Flag
from typing import Iterator, Optional, Tuple

from .exceptions import ConfigurationError, SystemCallError


logger = logging.getLogger(__name__)

STREAM_NAMES = ("stdin", "stdout", "stderr")


class StreamKind(str, Enum):
    """What a node is asked to do with one standard stream."""
    ABSENT = "absent"
    NEW = "new"
    EXISTING = "existing"


@dataclass(frozen=True)
class StreamRequest:
    """
    Descriptor request for one stream slot.

    Attributes:
        kind: Absent, request-new, or use-existing
        fd: The descriptor, only for EXISTING
    """
    kind: StreamKind
    fd: Optional[int] = None

    def __post_init__(self):
        if (self.kind == StreamKind.EXISTING) != (self.fd is not None):
            raise ValueError("A descriptor is required for EXISTING requests and only for them")

    @classmethod
    def existing(cls, fd: int) -> "StreamRequest":
        return cls(StreamKind.EXISTING, fd)

    @property
    def is_absent(self) -> bool:
        return self.kind == StreamKind.ABSENT

    @property
    def is_new(self) -> bool:
        return self.kind == StreamKind.NEW

    @property
    def is_existing(self) -> bool:
        return self.kind == StreamKind.EXISTING

    def __repr__(self) -> str:
        if self.is_existing:
            return f"EXISTING({self.fd})"
        return self.kind.name


ABSENT = StreamRequest(StreamKind.ABSENT)
NEW = StreamRequest(StreamKind.NEW)


@dataclass(frozen=True)
class Streams:
    """Requests (or, on a running instance, actual descriptors) for the three slots."""
    stdin: StreamRequest = ABSENT
    stdout: StreamRequest = ABSENT
    stderr: StreamRequest = ABSENT

    def __iter__(self) -> Iterator[Tuple[str, StreamRequest]]:
        for name in STREAM_NAMES:
            yield name, getattr(self, name)

    def with_stream(self, name: str, request: StreamRequest) -> "Streams":
        return replace(self, **{name: request})


class Capability(Flag):
    """What a node can do with one stream slot."""
    ABSENT = 1  # Can run without a descriptor
    CREATE = 2  # Can create a new descriptor
    ACCEPT = 4  # Can accept an existing descriptor

    ANY = ABSENT | CREATE | ACCEPT


@dataclass(frozen=True)
class Capabilities:
    """Per-slot capabilities; the default allows nothing but an absent stream."""
    stdin: Capability = Capability.ABSENT
    stdout: Capability = Capability.ABSENT
    stderr: Capability = Capability.ABSENT


def check_stream(request: StreamRequest, capability: Capability) -> bool:
    """Return True if a single request is legal against a capability."""
    if request.is_absent:
        return bool(capability & Capability.ABSENT)
    if request.is_new:
        return bool(capability & Capability.CREATE)
    return request.fd is not None and request.fd >= 0 and bool(capability & Capability.ACCEPT)


def check_streams(streams: Streams, capabilities: Capabilities) -> None:
    """
    Validate every slot of a request.

    Raises:
        ConfigurationError: naming the first slot whose request is not supported
    """
    for name, request in streams:
        if not check_stream(request, getattr(capabilities, name)):
            raise ConfigurationError(f"Wrong file descriptor option for {name}: {request!r}")


@dataclass
class PipeEnds:
    """
    Descriptors for one stream of a node about to start.

    ``local`` is the end the node keeps (exposed on the running instance),
    ``remote`` is the end the node's worker uses. Only NEW requests produce a
    ``local`` end; EXISTING requests hand their descriptor straight to the worker.
    """
    local: Optional[int] = None
    remote: Optional[int] = None
    created: bool = field(default=False)

    def close_all(self) -> None:
        """Close both ends of a pipe created here; never touches accepted descriptors."""
        if self.created:
            close_fd(self.local)
            close_fd(self.remote)


def open_pipe(request: StreamRequest, worker_reads: bool) -> PipeEnds:
    """
    Prepare the descriptors for one stream.

    Args:
        request: The stream request (ABSENT, NEW or EXISTING)
        worker_reads: True if the worker reads from this stream (stdin-like)

    Returns:
        PipeEnds with the worker's descriptor in ``remote``

    Raises:
        SystemCallError: if pipe creation fails
    """
    if request.is_absent:
        return PipeEnds()
    if request.is_existing:
        return PipeEnds(remote=request.fd)

    try:
        # Descriptors from os.pipe() are close-on-exec.
        read_fd, write_fd = os.pipe()
    except OSError as e:
        raise SystemCallError.from_os_error(e) from e

    logger.debug(f"Allocated pipe r={read_fd} w={write_fd}")
    if worker_reads:
        return PipeEnds(local=write_fd, remote=read_fd, created=True)
    return PipeEnds(local=read_fd, remote=write_fd, created=True)


def actual_stream(request: StreamRequest, ends: PipeEnds) -> StreamRequest:
    """The descriptor a running instance exposes for a slot after start."""
    if request.is_new:
        return StreamRequest.existing(ends.local)
    return request


def close_fd(fd: Optional[int]) -> None:
    if fd is not None:
        os.close(fd)
