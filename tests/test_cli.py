"""Tests for the subpipe command line."""

import pytest

from conftest import skip_if_no_cli
from subpipe.cli.commands.run import exit_code_for
from subpipe.cli.main import create_parser, main


@pytest.fixture
def write_script(tmp_path):
    def _write(text: str):
        path = tmp_path / "script.yml"
        path.write_text(text)
        return str(path)
    return _write


class TestExitCodes:
    """Pipeline status to process exit code."""

    @pytest.mark.parametrize("status, expected", [
        (0, 0),
        (1, 1),
        (3, 3),
        (255, 255),
        (256, 1),
        (258, 2),
        (-1, 255),
    ])
    def test_exit_code_for(self, status, expected):
        assert exit_code_for(status) == expected


class TestRunCommand:
    """`subpipe run` end to end."""

    def test_print_captured_variable(self, write_script, capsys):
        path = write_script("""
version: "1"
steps:
  - pipe:
      - echo: [hello, cli]
      - read: OUT
""")
        assert main(["run", path, "--print-var", "OUT"]) == 0
        assert "OUT=hello cli" in capsys.readouterr().out

    def test_command_line_variables(self, write_script, capsys):
        path = write_script("""
version: "1"
steps:
  - pipe:
      - echo: [{var: GREETING}]
      - read: OUT
""")
        assert main(["run", path, "--var", "GREETING=a=b", "--print-var", "OUT", "--quiet"]) == 0
        assert "OUT=a=b" in capsys.readouterr().out

    def test_exported_variable_reaches_command(self, write_script, capsys):
        skip_if_no_cli("printenv")
        path = write_script("""
version: "1"
variables:
  SUBPIPE_CLI_VALUE: exported
steps:
  - pipe:
      - exec: [printenv, SUBPIPE_CLI_VALUE]
      - read: OUT
""")
        assert main(["run", path, "--print-var", "OUT"]) == 0
        assert "OUT=exported" in capsys.readouterr().out

    def test_missing_variable_reported(self, write_script, capsys):
        path = write_script('version: "1"\nsteps: ["true"]\n')
        assert main(["run", path, "--print-var", "NOPE"]) == 0
        assert "Variable not set: NOPE" in capsys.readouterr().err

    def test_failing_step_sets_exit_code(self, write_script):
        path = write_script('version: "1"\nsteps: ["true", "false", "true"]\n')
        assert main(["run", path]) == 1

    def test_command_status_passed_through(self, write_script):
        skip_if_no_cli("sh")
        path = write_script('version: "1"\nsteps:\n  - exec: [sh, -c, "exit 7"]\n')
        assert main(["run", path]) == 7

    def test_dry_run_does_not_execute(self, write_script, tmp_path):
        target = tmp_path / "out.txt"
        path = write_script(f'version: "1"\nsteps:\n  - echo: x\n    stdout: {target}\n')
        assert main(["run", path, "--dry-run"]) == 0
        assert not target.exists()

    def test_validation_error_exit_code(self, write_script):
        path = write_script('version: "1"\nsteps: []\n')
        assert main(["run", path]) == 2

    def test_missing_script(self, tmp_path):
        assert main(["run", str(tmp_path / "absent.yml")]) == 1

    def test_bad_var_format(self, write_script):
        path = write_script('version: "1"\nsteps: ["true"]\n')
        assert main(["run", path, "--var", "NOEQUALS"]) == 2

    def test_start_error_exit_code(self, write_script, tmp_path):
        path = write_script(
            f'version: "1"\nsteps:\n  - echo: x\n    stdout: {tmp_path}/missing/dir/out.txt\n'
        )
        assert main(["run", path]) == 1

    def test_unresolved_variable_exit_code(self, write_script):
        path = write_script('version: "1"\nsteps:\n  - echo: x\n    stdout: {var: SUBPIPE_UNSET_TARGET}\n')
        assert main(["run", path]) == 1


class TestParser:
    """Argument parsing."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_run_arguments(self):
        args = create_parser().parse_args(
            ["run", "s.yml", "--var", "A=1", "--var", "B=2", "--print-var", "A", "--log-level", "debug"]
        )
        assert args.script == "s.yml"
        assert args.var == ["A=1", "B=2"]
        assert args.print_var == ["A"]
        assert args.log_level == "debug"
        assert not args.dry_run
