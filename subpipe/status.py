"""Status codes returned by ``wait`` and ``run``."""

SUCCESS = 0

# Always-fail, a failed boolean chain, or an unresolved variable inside a
# background unit of work.
FAILURE = 1

# Waiting on a child process failed; not a valid exit status.
WAIT_FAILED = -1


def is_success(status: int) -> bool:
    return status == SUCCESS
