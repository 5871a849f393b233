"""
Tests for the pipe node: descriptor negotiation, data transfer, status
combination and cleanup when the second side fails to start.
"""

import pytest

from conftest import open_fd_count, skip_if_no_cli
from subpipe.exceptions import ConfigurationError, SystemCallError, VariableNotFound
from subpipe.nodes import (
    DEV_NULL,
    Capture,
    Emit,
    Exec,
    File,
    FileMode,
    Pipe,
    echo,
    exec_,
    pipe,
    read,
    run,
    true_,
)
from subpipe.status import SUCCESS
from subpipe.variables import Environment, Var


class TestPipeConstruction:
    """Pipes own independent copies of their children."""

    def test_children_are_cloned(self):
        left, right = Emit("x"), Capture("y")
        node = Pipe(left, right)
        assert node.left == left and node.left is not left
        assert node.right == right and node.right is not right

    def test_clone_is_deep(self):
        inner = Pipe(Emit("x"), Exec("cat"))
        outer = Pipe(inner, Capture("y"))
        copy = outer.clone()
        assert copy == outer
        assert copy.left is not outer.left
        assert copy.left.left is not outer.left.left

    def test_pipe_helper_folds_left(self):
        node = pipe(echo("x"), exec_("cat"), read("y"))
        assert isinstance(node, Pipe)
        assert isinstance(node.left, Pipe)
        assert node.right == Capture("y")

    def test_pipe_helper_needs_two_nodes(self):
        with pytest.raises(ValueError):
            pipe(echo("x"))

    def test_template_reused(self):
        env = Environment()
        node = echo("again") | read("out")
        for _ in range(3):
            assert run(node, env) == SUCCESS
        assert env.lookup("out") == "again"


class TestNegotiation:
    """Which side creates the connecting descriptor."""

    def test_left_creates_when_right_accepts(self, env):
        skip_if_no_cli("cat")
        # Emit creates, cat accepts.
        assert run(echo("left creates") | exec_("cat") | read("out"), env) == SUCCESS
        assert env.lookup("out") == "left creates"

    def test_right_creates_when_left_accepts(self, tmp_path):
        # File sinks can only create; Emit accepts.
        target = tmp_path / "sink.txt"
        assert run(Pipe(Emit("right creates"), File(str(target), FileMode.WRITE)), Environment()) == SUCCESS
        assert target.read_text() == "right creates\n"

    def test_file_to_file_is_invalid(self, tmp_path):
        source = File(str(tmp_path / "a"), FileMode.READ)
        sink = File(str(tmp_path / "b"), FileMode.WRITE)
        with pytest.raises(ConfigurationError):
            run(Pipe(source, sink), Environment())

    def test_capture_cannot_feed_anything(self):
        with pytest.raises(ConfigurationError):
            run(read("x") | read("y"), Environment())

    def test_constant_cannot_be_piped(self):
        with pytest.raises(ConfigurationError):
            run(true_ | read("y"), Environment())


class TestTransfer:
    """Bytes pass through unchanged, whatever the volume."""

    @pytest.mark.parametrize("size", [0, 1, 999, 1000, 1001, 65536, 300000])
    def test_byte_for_byte_through_cat(self, env, size):
        skip_if_no_cli("cat")
        payload = ("abcdefghij" * (size // 10 + 1))[:size]
        assert run(echo(payload) | exec_("cat") | exec_("cat") | read("out"), env) == SUCCESS
        assert env.lookup("out") == payload

    def test_long_command_chain(self, env):
        """A five-stage chain ending in the null device succeeds."""
        skip_if_no_cli("ls", "rev", "cut", "sort", "uniq")
        node = (
            exec_("ls", "/etc")
            | exec_("rev")
            | exec_("cut", "-d.", "-f1")
            | exec_("rev")
            | exec_("sort")
            | (exec_("uniq", "-c") > DEV_NULL)
        )
        assert run(node, env) == SUCCESS


class TestStatus:
    """Pipe status is the bitwise OR of both sides."""

    def test_both_succeed(self, env):
        skip_if_no_cli("true")
        assert run(exec_("true") | exec_("true"), env) == 0

    def test_statuses_combined_with_or(self, env):
        skip_if_no_cli("sh")
        node = exec_("sh", "-c", "exit 2") | exec_("sh", "-c", "cat >/dev/null; exit 1")
        assert run(node, env) == 3

    def test_left_failure_not_hidden(self, env):
        skip_if_no_cli("false", "cat")
        assert run(exec_("false") | exec_("cat") | read("out"), env) == 1


class TestCleanup:
    """A failed second start releases what the first start committed."""

    def test_right_side_unresolved_argument(self, env):
        skip_if_no_cli("echo")
        before = open_fd_count()
        with pytest.raises(VariableNotFound):
            run(exec_("echo", "hi") | exec_("echo", Var("SUBPIPE_UNDEFINED")), env)
        assert open_fd_count() == before

    def test_left_side_fails_after_right_created(self, tmp_path):
        env = Environment()
        target = tmp_path / "never-written.txt"
        before = open_fd_count()
        with pytest.raises(VariableNotFound):
            run(Pipe(Emit("x"), Exec("cat", Var("MISSING"))) > str(target), env)
        assert open_fd_count() == before

    def test_thread_side_abandoned(self):
        env = Environment()
        before = open_fd_count()
        with pytest.raises(VariableNotFound):
            run(echo("data" * 50000) | exec_("cat", Var("MISSING")), env)
        assert open_fd_count() == before

    def test_file_open_failure_on_right(self, tmp_path):
        env = Environment()
        before = open_fd_count()
        with pytest.raises(SystemCallError):
            run(echo("x") | (exec_("cat") > str(tmp_path / "no" / "such" / "file")), env)
        assert open_fd_count() == before
