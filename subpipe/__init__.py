"""
subpipe - compose subprocess pipelines as values and run them without a shell.

    env = Environment(Environment.snapshot())
    env.run(exec_("ls", "/etc") | exec_("sort") | read("listing"))
    env.lookup("listing")
"""

from .exceptions import (
    ConfigurationError,
    ScriptValidationError,
    SubpipeError,
    SystemCallError,
    ValidationError,
    VariableNotFound,
)
from .nodes import (
    DEV_NULL,
    DEV_ZERO,
    AlwaysFail,
    AlwaysSucceed,
    And,
    Capture,
    Emit,
    Exec,
    File,
    FileMode,
    Node,
    Or,
    Pipe,
    and_,
    echo,
    exec_,
    false_,
    open_file,
    or_,
    pipe,
    read,
    run,
    run_script,
    true_,
)
from .streams import ABSENT, NEW, Capabilities, Capability, StreamKind, StreamRequest, Streams
from .variables import Environment, Literal, Var

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ScriptValidationError",
    "SubpipeError",
    "SystemCallError",
    "ValidationError",
    "VariableNotFound",
    "DEV_NULL",
    "DEV_ZERO",
    "AlwaysFail",
    "AlwaysSucceed",
    "And",
    "Capture",
    "Emit",
    "Exec",
    "File",
    "FileMode",
    "Node",
    "Or",
    "Pipe",
    "and_",
    "echo",
    "exec_",
    "false_",
    "open_file",
    "or_",
    "pipe",
    "read",
    "run",
    "run_script",
    "true_",
    "ABSENT",
    "NEW",
    "Capabilities",
    "Capability",
    "StreamKind",
    "StreamRequest",
    "Streams",
    "Environment",
    "Literal",
    "Var",
]
