"""Pipeline script loader and strict validation.

Scripts are YAML documents describing a sequence of node trees:

    version: "1"
    variables:
      GREETING: hello
    steps:
      - pipe:
          - echo: [{var: GREETING}, world]
          - read: OUT
      - exec: [ls, /etc]
        stdout: /dev/null
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml

from subpipe.exceptions import ScriptValidationError, ValidationError
from subpipe.nodes import (
    And,
    Capture,
    Emit,
    Exec,
    File,
    FileMode,
    Node,
    Or,
    Pipe,
    false_,
    run_script,
    true_,
)
from subpipe.variables import Environment, Literal, Var


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps yes/no/on/off/true/false as plain strings."""
    pass


# argv words such as 'yes', 'on' or 'true' must stay strings, so drop the
# implicit bool resolvers entirely.
PreservingLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != 'tag:yaml.org,2002:bool']
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass
class Script:
    """A loaded script: exportable variables plus the steps to run in order."""
    steps: List[Node]
    variables: Dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None

    def run(self, env: Environment) -> int:
        """Apply the script variables to ``env`` and run every step."""
        for key, value in self.variables.items():
            env.set(key, value, exportable=True)
        return run_script(self.steps, env)


class ScriptLoader:
    """Loads and validates pipeline scripts."""

    SUPPORTED_VERSIONS = {"1"}
    KNOWN_FIELDS = {'version', 'name', 'variables', 'steps'}
    NODE_KINDS = ('exec', 'echo', 'read', 'open', 'pipe', 'and', 'or')
    CONSTANTS = {'true': true_, 'false': false_}
    REDIRECT_KEYS = ('stdin', 'stdout', 'stdout_append')
    FILE_MODES = {
        'read': FileMode.READ,
        'write': FileMode.WRITE,
        'append': FileMode.APPEND,
        'read_write': FileMode.READ_WRITE,
        'read_append': FileMode.READ_APPEND,
    }

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, script_path: Union[str, Path]) -> Script:
        """Load and validate a script file."""
        self.errors = []
        try:
            with open(script_path, 'r') as f:
                document = yaml.load(f, Loader=PreservingLoader)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load script: {e}")
            self._raise_validation_errors()
        return self._build_script(document)

    def load_string(self, text: str) -> Script:
        """Load and validate a script from YAML text."""
        self.errors = []
        try:
            document = yaml.load(text, Loader=PreservingLoader)
        except yaml.YAMLError as e:
            self._add_error(f"Failed to parse script: {e}")
            self._raise_validation_errors()
        return self._build_script(document)

    def _build_script(self, document: Any) -> Script:
        if document is None or not isinstance(document, dict):
            self._add_error("Script must be a YAML object/dictionary")
            self._raise_validation_errors()

        version = document.get('version')
        if version is None:
            self._add_error("'version' field is required")
        elif str(version) not in self.SUPPORTED_VERSIONS:
            self._add_error(f"Unsupported version '{version}'. Supported: {sorted(self.SUPPORTED_VERSIONS)}")

        for key in document.keys():
            if key not in self.KNOWN_FIELDS:
                self._add_error(f"Unknown field '{key}'")

        name = document.get('name')
        if name is not None and not isinstance(name, str):
            self._add_error(f"'name' must be a string, got {type(name).__name__}")
            name = None

        variables = self._build_variables(document.get('variables'))

        steps: List[Node] = []
        raw_steps = document.get('steps')
        if not raw_steps:
            self._add_error("'steps' field is required and must not be empty")
        elif not isinstance(raw_steps, list):
            self._add_error("'steps' must be a list")
        else:
            for i, raw_step in enumerate(raw_steps):
                node = self._build_node(raw_step, f"steps[{i}]")
                if node is not None:
                    steps.append(node)

        if self.errors:
            self._raise_validation_errors()

        return Script(steps=steps, variables=variables, name=name)

    def _build_variables(self, raw: Any) -> Dict[str, str]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            self._add_error("'variables' must be a dictionary", "variables")
            return {}

        variables = {}
        for key, value in raw.items():
            if not isinstance(key, str) or not key:
                self._add_error(f"Variable name must be a non-empty string, got {key!r}", "variables")
            elif not self._is_scalar(value):
                self._add_error(f"Variable '{key}' must be a scalar value", f"variables.{key}")
            else:
                variables[key] = str(value)
        return variables

    def _build_node(self, raw: Any, path: str) -> Optional[Node]:
        """Build one node tree; returns None (with errors recorded) if invalid."""
        if isinstance(raw, str):
            if raw in self.CONSTANTS:
                return self.CONSTANTS[raw]
            self._add_error(f"Unknown step '{raw}'", path)
            return None

        if not isinstance(raw, dict):
            self._add_error(f"Step must be a dictionary or one of {sorted(self.CONSTANTS)}", path)
            return None

        kinds = [key for key in raw if key in self.NODE_KINDS]
        unknown = [key for key in raw if key not in self.NODE_KINDS and key not in self.REDIRECT_KEYS]
        if unknown:
            self._add_error(f"Unknown keys {unknown}", path)
        if len(kinds) != 1:
            self._add_error(f"Step must have exactly one of {list(self.NODE_KINDS)}, found {kinds}", path)
            return None

        kind = kinds[0]
        node = getattr(self, f"_build_{kind}")(raw[kind], f"{path}.{kind}")
        if node is None:
            return None
        return self._apply_redirects(node, raw, path)

    def _build_exec(self, raw: Any, path: str) -> Optional[Node]:
        args = self._build_values(raw, path)
        return Exec(*args) if args else None

    def _build_echo(self, raw: Any, path: str) -> Optional[Node]:
        args = self._build_values(raw, path)
        return Emit(*args) if args else None

    def _build_read(self, raw: Any, path: str) -> Optional[Node]:
        if not isinstance(raw, str) or not raw:
            self._add_error("read requires a variable name", path)
            return None
        return Capture(raw)

    def _build_open(self, raw: Any, path: str) -> Optional[Node]:
        if not isinstance(raw, dict) or 'path' not in raw:
            self._add_error("open requires a dictionary with 'path' and 'mode'", path)
            return None
        mode_name = raw.get('mode', 'read')
        if mode_name not in self.FILE_MODES:
            self._add_error(f"Unknown file mode '{mode_name}'. Expected one of {list(self.FILE_MODES)}", path)
            return None
        extra = set(raw) - {'path', 'mode'}
        if extra:
            self._add_error(f"Unknown keys {sorted(extra)}", path)
        file_path = self._build_value(raw['path'], f"{path}.path")
        if file_path is None:
            return None
        return File(file_path, self.FILE_MODES[mode_name])

    def _build_pipe(self, raw: Any, path: str) -> Optional[Node]:
        if not isinstance(raw, list) or len(raw) < 2:
            self._add_error("pipe requires a list of at least two steps", path)
            return None
        nodes = [self._build_node(item, f"{path}[{i}]") for i, item in enumerate(raw)]
        if any(node is None for node in nodes):
            return None
        result = nodes[0]
        for node in nodes[1:]:
            result = Pipe(result, node)
        return result

    def _build_and(self, raw: Any, path: str) -> Optional[Node]:
        pair = self._build_pair(raw, path, 'and')
        return And(*pair) if pair else None

    def _build_or(self, raw: Any, path: str) -> Optional[Node]:
        pair = self._build_pair(raw, path, 'or')
        return Or(*pair) if pair else None

    def _build_pair(self, raw: Any, path: str, kind: str):
        if not isinstance(raw, list) or len(raw) != 2:
            self._add_error(f"{kind} requires a list of exactly two steps", path)
            return None
        left = self._build_node(raw[0], f"{path}[0]")
        right = self._build_node(raw[1], f"{path}[1]")
        if left is None or right is None:
            return None
        return left, right

    def _apply_redirects(self, node: Node, raw: Dict[str, Any], path: str) -> Optional[Node]:
        if 'stdout' in raw and 'stdout_append' in raw:
            self._add_error("'stdout' and 'stdout_append' are mutually exclusive", path)
            return None

        if 'stdin' in raw:
            source = self._build_value(raw['stdin'], f"{path}.stdin")
            if source is None:
                return None
            node = Pipe(File(source, FileMode.READ), node)
        if 'stdout' in raw:
            target = self._build_value(raw['stdout'], f"{path}.stdout")
            if target is None:
                return None
            node = Pipe(node, File(target, FileMode.WRITE))
        if 'stdout_append' in raw:
            target = self._build_value(raw['stdout_append'], f"{path}.stdout_append")
            if target is None:
                return None
            node = Pipe(node, File(target, FileMode.APPEND))
        return node

    def _build_values(self, raw: Any, path: str) -> List[Union[Literal, Var]]:
        if not isinstance(raw, list):
            raw = [raw]
        if not raw:
            self._add_error("argument list must not be empty", path)
            return []
        values = [self._build_value(item, f"{path}[{i}]") for i, item in enumerate(raw)]
        if any(value is None for value in values):
            return []
        return values

    def _build_value(self, raw: Any, path: str) -> Optional[Union[Literal, Var]]:
        """A scalar is literal text; {var: NAME} references a variable."""
        if isinstance(raw, dict):
            if set(raw) != {'var'} or not isinstance(raw['var'], str) or not raw['var']:
                self._add_error("variable reference must be {var: NAME}", path)
                return None
            return Var(raw['var'])
        if not self._is_scalar(raw):
            self._add_error(f"expected text or {{var: NAME}}, got {type(raw).__name__}", path)
            return None
        return Literal(str(raw))

    @staticmethod
    def _is_scalar(value: Any) -> bool:
        return isinstance(value, (str, int, float)) and not isinstance(value, bool)

    def _add_error(self, message: str, path: str = ""):
        """Add validation error."""
        self.errors.append(ValidationError(message, path))

    def _raise_validation_errors(self):
        """Raise ScriptValidationError with accumulated errors."""
        raise ScriptValidationError(self.errors)


def load_script(script_path: Union[str, Path]) -> Script:
    return ScriptLoader().load(script_path)
