"""
Tests for the constant nodes and the short-circuiting And/Or combinators.
"""

import pytest

from subpipe.exceptions import VariableNotFound
from subpipe.exec import RunningThread
from subpipe.nodes import And, Or, Pipe, and_, echo, exec_, false_, or_, read, run, true_
from subpipe.status import FAILURE, SUCCESS
from subpipe.streams import Streams
from subpipe.variables import Environment, Var


@pytest.fixture
def local_env():
    return Environment()


class TestConstants:
    """Always-succeed and always-fail."""

    def test_true_is_always_zero(self, local_env):
        for _ in range(5):
            assert run(true_, local_env) == SUCCESS

    def test_false_is_always_nonzero(self, local_env):
        for _ in range(5):
            assert run(false_, local_env) == FAILURE

    def test_constants_run_against_read_only_snapshot(self):
        assert run(true_, Environment.snapshot()) == SUCCESS


class TestAndOr:
    """Truth tables of the boolean chains."""

    @pytest.mark.parametrize("left, right, expected", [
        (true_, true_, SUCCESS),
        (true_, false_, FAILURE),
        (false_, true_, FAILURE),
        (false_, false_, FAILURE),
    ])
    def test_and(self, local_env, left, right, expected):
        assert run(And(left, right), local_env) == expected
        assert run(left & right, local_env) == expected

    @pytest.mark.parametrize("left, right, expected", [
        (true_, true_, SUCCESS),
        (true_, false_, SUCCESS),
        (false_, true_, SUCCESS),
        (false_, false_, FAILURE),
    ])
    def test_or(self, local_env, left, right, expected):
        assert run(Or(left, right), local_env) == expected
        assert run(left.or_else(right), local_env) == expected

    def test_nested_chains(self, local_env):
        node = or_(and_(true_, false_), and_(true_, true_))
        assert run(node, local_env) == SUCCESS


class TestShortCircuit:
    """The right side never starts when the left side decides the outcome."""

    def test_and_skips_right_after_failure(self):
        env = Environment()
        assert run(and_(false_, echo("test") | read("test")), env) != SUCCESS
        with pytest.raises(VariableNotFound):
            env.lookup("test")

    def test_or_skips_right_after_success(self):
        env = Environment()
        assert run(or_(true_, echo("test") | read("test")), env) == SUCCESS
        with pytest.raises(VariableNotFound):
            env.lookup("test")

    def test_and_runs_right_after_success(self):
        env = Environment()
        assert run(true_ & (echo("ran") | read("test")), env) == SUCCESS
        assert env.lookup("test") == "ran"

    def test_or_runs_right_after_failure(self):
        env = Environment()
        assert run(false_.or_else(echo("ran") | read("test")), env) == SUCCESS
        assert env.lookup("test") == "ran"

    def test_right_sees_left_side_effects(self):
        """The right side starts only after the left side has finished."""
        env = Environment()
        node = (echo("first") | read("a")) & (echo(Var("a"), "second") | read("b"))
        assert run(node, env) == SUCCESS
        assert env.lookup("b") == "first second"


class TestBackgroundErrors:
    """Errors inside a boolean chain become a failing status."""

    def test_unresolved_variable_in_child(self):
        env = Environment()
        node = true_ & exec_(Var("NO_SUCH_PROGRAM_VARIABLE"))
        assert run(node, env) == FAILURE

    def test_failure_does_not_raise_from_run(self):
        env = Environment()
        node = false_.or_else(exec_("subpipe-no-such-program-xyz"))
        assert run(node, env) == FAILURE

    def test_unexpected_start_error_in_child(self):
        """A child rejected with a non-subpipe error still fails the chain."""
        env = Environment(Environment.snapshot())
        env.set("NUL_ARG", "a\x00b", exportable=False)
        assert run(Or(exec_("echo", Var("NUL_ARG")), false_), env) == FAILURE
        assert run(And(true_, exec_("echo", Var("NUL_ARG"))), env) == FAILURE

    def test_raising_target_reports_failure(self):
        def broken() -> int:
            raise RuntimeError("broken")

        assert RunningThread(broken, Streams(), name="subpipe-test").wait() == FAILURE


class TestOperatorPrecedence:
    """`&` binds tighter than `|`, so a piped right operand needs parentheses."""

    def test_unparenthesised_pipe_wraps_the_chain(self):
        node = false_ & echo("t") | read("t")
        assert isinstance(node, Pipe)
        assert isinstance(node.left, And)

    def test_parenthesised_right_operand(self):
        node = false_ & (echo("t") | read("t"))
        assert isinstance(node, And)
        assert node.right == Pipe(echo("t"), read("t"))
