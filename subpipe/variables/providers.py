"""
Value providers: text that is resolved against an environment when a node starts.
"""

from dataclasses import dataclass
from typing import Union

from .environment import Environment


@dataclass(frozen=True)
class Literal:
    """Plain text, returned as-is."""
    value: str

    def resolve(self, env: Environment) -> str:
        return self.value


@dataclass(frozen=True)
class Var:
    """
    Reference to a variable in the environment.

    Resolution raises VariableNotFound when the name is absent; there is no
    default value.
    """
    name: str

    def resolve(self, env: Environment) -> str:
        return env.lookup(self.name)


Provider = Union[Literal, Var]


def make_provider(value: Union[str, Literal, Var]) -> Provider:
    """Wrap plain strings as literals; pass providers through unchanged."""
    if isinstance(value, (Literal, Var)):
        return value
    if isinstance(value, str):
        return Literal(value)
    raise TypeError(f"Expected str or Var, got {type(value).__name__}")
