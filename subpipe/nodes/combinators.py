"""
Binary nodes: Pipe, And, Or.

All three take independent copies of their children at construction so a
node reused elsewhere never shares state with the copy held here.
"""

import logging
from dataclasses import dataclass

from ..exceptions import ConfigurationError
from ..exec.running import RunningInstance, RunningPipe, RunningThread
from ..status import FAILURE, SUCCESS
from ..streams import NEW, Capabilities, Capability, Streams
from ..variables.environment import Environment
from .base import Node, run


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Binary(Node):
    left: Node
    right: Node

    def __post_init__(self):
        object.__setattr__(self, "left", self.left.clone())
        object.__setattr__(self, "right", self.right.clone())

    def clone(self) -> Node:
        return type(self)(self.left, self.right)

    def preflight(self, env: Environment) -> None:
        self.left.preflight(env)
        self.right.preflight(env)


@dataclass(frozen=True)
class Pipe(_Binary):
    """
    Connects the left node's stdout to the right node's stdin.

    Whichever side can create the connecting descriptor is started first; the
    descriptor it produces is then handed to the other side.
    """

    @property
    def capabilities(self) -> Capabilities:
        # stderr follows the right side's stdout capability, as stdout does.
        return Capabilities(
            stdin=self.left.capabilities.stdin,
            stdout=self.right.capabilities.stdout,
            stderr=self.right.capabilities.stdout,
        )

    def _left_creates(self) -> bool:
        """True if the left side creates the connecting descriptor, False if the right side does."""
        left_caps = self.left.capabilities
        right_caps = self.right.capabilities
        if (left_caps.stdout & Capability.CREATE) and (right_caps.stdin & Capability.ACCEPT):
            return True
        if (left_caps.stdout & Capability.ACCEPT) and (right_caps.stdin & Capability.CREATE):
            return False
        raise ConfigurationError(
            f"Invalid pipe connection attempt: {type(self.left).__name__} | {type(self.right).__name__}"
        )

    def preflight(self, env: Environment) -> None:
        # Every connection in the tree is checked before any side starts.
        self._left_creates()
        super().preflight(env)

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        if self._left_creates():
            left_request = Streams(stdin=streams.stdin, stdout=NEW)
            left = self.left.start(env, left_request)
            right_request = Streams(stdin=left.streams.stdout, stdout=streams.stdout)
            try:
                right = self.right.start(env, right_request)
            except Exception:
                left.abandon(left_request)
                raise
        else:
            right_request = Streams(stdin=NEW, stdout=streams.stdout)
            right = self.right.start(env, right_request)
            left_request = Streams(stdin=streams.stdin, stdout=right.streams.stdin)
            try:
                left = self.left.start(env, left_request)
            except Exception:
                right.abandon(right_request)
                raise

        return RunningPipe(left, right)


def _run_in_background(node: Node, env: Environment) -> int:
    """
    Run a child node from inside a background unit of work.

    Errors raised by ``start`` here have no caller to reach, so they are
    logged and turned into a failing status.
    """
    try:
        return run(node, env)
    except OSError as e:
        logger.error(f"Failed to start {node!r}: {e}")
        return e.errno or FAILURE
    except Exception as e:
        logger.error(f"Failed to start {node!r}: {e!r}")
        return FAILURE


@dataclass(frozen=True)
class And(_Binary):
    """Runs the right node only if the left one succeeded."""

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        left, right = self.left, self.right

        def chain() -> int:
            if _run_in_background(left, env) != SUCCESS:
                return FAILURE
            if _run_in_background(right, env) != SUCCESS:
                return FAILURE
            return SUCCESS

        return RunningThread(chain, streams, name="subpipe-and")


@dataclass(frozen=True)
class Or(_Binary):
    """Runs the right node only if the left one failed."""

    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        left, right = self.left, self.right

        def chain() -> int:
            if _run_in_background(left, env) == SUCCESS:
                return SUCCESS
            if _run_in_background(right, env) == SUCCESS:
                return SUCCESS
            return FAILURE

        return RunningThread(chain, streams, name="subpipe-or")


def pipe(*nodes: Node) -> Node:
    """Chain two or more nodes left to right."""
    if len(nodes) < 2:
        raise ValueError("pipe requires at least two nodes")
    result = nodes[0]
    for node in nodes[1:]:
        result = Pipe(result, node)
    return result


def and_(left: Node, right: Node) -> Node:
    return And(left, right)


def or_(left: Node, right: Node) -> Node:
    return Or(left, right)
