"""
Variable environment for running pipelines.

An Environment maps variable names to a value and an exportable flag.
Exportable variables are handed to child processes; variables produced by
a capture are kept local to the environment.
"""

import os
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, TYPE_CHECKING

from ..exceptions import VariableNotFound

if TYPE_CHECKING:
    from ..nodes.base import Node


class Environment:
    """
    Mutable, ordered variable store.

    Mutation is set-only: variables are added or overwritten, never removed.
    The store does no locking, so only one execution path may write to a
    given instance at a time.
    """

    def __init__(self, base: Optional["Environment"] = None, read_only: bool = False):
        """
        Initialize an environment.

        Args:
            base: Environment to copy variables from (copy-on-construct)
            read_only: Reject captures into this environment
        """
        self._vars: Dict[str, Tuple[str, bool]] = dict(base._vars) if base is not None else {}
        self.read_only = read_only

    @classmethod
    def snapshot(cls) -> "Environment":
        """Take a read-only snapshot of the hosting process's variables, all exportable."""
        return cls.from_mapping(os.environ, read_only=True)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str], read_only: bool = False) -> "Environment":
        env = cls()
        for name, value in mapping.items():
            env._vars[name] = (value, True)
        env.read_only = read_only
        return env

    def copy(self, read_only: bool = False) -> "Environment":
        """Return an independent copy; the copy is mutable unless asked otherwise."""
        return Environment(self, read_only=read_only)

    def lookup(self, name: str) -> str:
        try:
            return self._vars[name][0]
        except KeyError:
            raise VariableNotFound(name) from None

    def is_exportable(self, name: str) -> bool:
        try:
            return self._vars[name][1]
        except KeyError:
            raise VariableNotFound(name) from None

    def set(self, name: str, value: str, exportable: bool = True) -> None:
        self._vars[name] = (value, exportable)

    def exportable_pairs(self) -> List[str]:
        """Return ``name=value`` strings for exportable variables, ordered by name."""
        return [f"{name}={value}" for name, value in self.child_env().items()]

    def child_env(self) -> Dict[str, str]:
        """Return the exportable variables as the environment block for a child process."""
        return {
            name: value
            for name, (value, exportable) in sorted(self._vars.items())
            if exportable
        }

    def run(self, node: "Node") -> int:
        from ..nodes.base import run
        return run(node, self)

    def run_script(self, nodes) -> int:
        from ..nodes.base import run_script
        return run_script(nodes, self)

    def __contains__(self, name: object) -> bool:
        return name in self._vars

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        mode = "read-only" if self.read_only else "mutable"
        return f"<Environment {mode} vars={len(self._vars)}>"
