"""
Node base class and the top-level run helpers.

A node is an immutable, reusable description of work. ``start`` turns it
into a one-shot running instance; a node can be started any number of times.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

from ..exec.running import RunningInstance
from ..status import SUCCESS
from ..streams import Capabilities, Streams, check_streams
from ..variables.environment import Environment
from ..variables.providers import Var


logger = logging.getLogger(__name__)


class Node(ABC):
    """
    Base class for every pipeline node.

    Subclasses declare ``capabilities`` and implement ``_start``; validation
    of the requested streams happens here, before ``_start`` commits any
    resource.
    """

    capabilities: Capabilities = Capabilities()

    def start(self, env: Environment, streams: Optional[Streams] = None) -> RunningInstance:
        """
        Start this node.

        Args:
            env: Environment to resolve values against and capture into
            streams: Descriptor requests; all absent by default

        Returns:
            The running instance

        Raises:
            ConfigurationError: streams or environment unsuitable (nothing committed)
            SystemCallError: an OS primitive failed (partial resources released)
            VariableNotFound: a value needed at start could not be resolved
        """
        if streams is None:
            streams = Streams()
        check_streams(streams, self.capabilities)
        self.preflight(env)
        logger.debug(f"Starting {self!r} with {streams}")
        return self._start(streams, env)

    def preflight(self, env: Environment) -> None:
        """Check that this node can run against ``env``; nodes with children recurse."""

    @abstractmethod
    def _start(self, streams: Streams, env: Environment) -> RunningInstance:
        """Commit resources and launch the work. Streams are already validated."""

    @abstractmethod
    def clone(self) -> "Node":
        """Return an independent deep copy."""

    def __or__(self, other: "Node") -> "Node":
        from .combinators import Pipe
        return Pipe(self, other)

    def __and__(self, other: "Node") -> "Node":
        """
        ``a & b`` is ``And(a, b)``. ``&`` binds tighter than ``|``, so a piped
        right operand must be parenthesized: ``a & (b | c)``.
        """
        return self.and_then(other)

    def and_then(self, other: "Node") -> "Node":
        from .combinators import And
        return And(self, other)

    def or_else(self, other: "Node") -> "Node":
        from .combinators import Or
        return Or(self, other)

    def __gt__(self, path: Union[str, Var]) -> "Node":
        from .combinators import Pipe
        from .files import File, FileMode
        return Pipe(self, File(path, FileMode.WRITE))

    def __rshift__(self, path: Union[str, Var]) -> "Node":
        from .combinators import Pipe
        from .files import File, FileMode
        return Pipe(self, File(path, FileMode.WRITE | FileMode.APPEND))

    def __lt__(self, path: Union[str, Var]) -> "Node":
        from .combinators import Pipe
        from .files import File, FileMode
        return Pipe(File(path, FileMode.READ), self)

    def __lshift__(self, text: Union[str, Var]) -> "Node":
        from .builtins import Emit
        from .combinators import Pipe
        return Pipe(Emit(text), self)


def run(node: Node, env: Environment) -> int:
    """Start ``node`` with no streams attached and wait for its status."""
    return node.start(env).wait()


def run_script(nodes: Iterable[Node], env: Environment) -> int:
    """Run nodes one after another; stop at and return the first nonzero status."""
    for node in nodes:
        status = run(node, env)
        if status != SUCCESS:
            logger.debug(f"Script stopped at {node!r} with status {status}")
            return status
    return SUCCESS
