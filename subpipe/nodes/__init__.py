"""
Pipeline nodes.

Build trees from the factories (``exec_``, ``echo``, ``read``, ``open_file``,
``true_``, ``false_``) and combine them with ``|`` (pipe), ``&`` (and),
``or_else`` and the redirections ``>``, ``>>``, ``<`` and ``<<``.

Python binds ``&`` tighter than ``|`` and ``<``/``>`` looser than ``|``, so
parenthesize mixed expressions: ``false_ & (echo("t") | read("t"))``,
``(exec_("sort") < path) | read("out")``.
"""

from .base import Node, run, run_script
from .builtins import AlwaysFail, AlwaysSucceed, Capture, Emit, echo, false_, read, true_
from .combinators import And, Or, Pipe, and_, or_, pipe
from .command import Exec, exec_
from .files import DEV_NULL, DEV_ZERO, File, FileMode, open_file

__all__ = [
    "Node",
    "run",
    "run_script",
    "Exec",
    "Pipe",
    "And",
    "Or",
    "Capture",
    "Emit",
    "File",
    "FileMode",
    "AlwaysSucceed",
    "AlwaysFail",
    "exec_",
    "echo",
    "read",
    "open_file",
    "pipe",
    "and_",
    "or_",
    "true_",
    "false_",
    "DEV_NULL",
    "DEV_ZERO",
]
