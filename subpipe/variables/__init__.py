"""
Variables module.
Holds the pipeline environment and the value providers resolved against it.
"""

from .environment import Environment
from .providers import Literal, Var, Provider, make_provider

__all__ = ['Environment', 'Literal', 'Var', 'Provider', 'make_provider']
