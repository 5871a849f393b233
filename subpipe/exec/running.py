"""
Running instances: the live handles returned by ``Node.start``.

Each instance exposes the descriptors it actually ended up using and a
blocking ``wait`` that returns an integer status. Instances are one-shot.
"""

import logging
import os
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..status import FAILURE, WAIT_FAILED
from ..streams import Streams, close_fd


logger = logging.getLogger(__name__)


class RunningInstance(ABC):
    """A started node."""

    def __init__(self, streams: Streams):
        self._streams = streams

    @property
    def streams(self) -> Streams:
        """Actual descriptors in use: ABSENT or EXISTING for every slot."""
        return self._streams

    @abstractmethod
    def wait(self) -> int:
        """Block until the work is finished and return its status."""

    def abandon(self, requested: Streams) -> None:
        """
        Release an instance whose pipeline failed to start completely.

        Closes every descriptor this instance created in answer to a NEW
        request, so its workers see end-of-stream, then waits for it.
        """
        for name, request in requested:
            if request.is_new:
                try:
                    close_fd(getattr(self.streams, name).fd)
                except OSError as e:
                    logger.debug(f"Closing abandoned {name} failed: {e}")
        status = self.wait()
        logger.debug(f"Abandoned {type(self).__name__} finished with status {status}")


class RunningProcess(RunningInstance):
    """An external command launched in a child process."""

    def __init__(self, process: Optional[subprocess.Popen], streams: Streams, status: Optional[int] = None):
        """
        Args:
            process: The child process, or None if the launch already failed
            streams: Actual descriptors retained by the parent
            status: Preset status when there is no process to wait on
        """
        super().__init__(streams)
        self.process = process
        self._status = status

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    def wait(self) -> int:
        if self.process is None:
            return self._status if self._status is not None else WAIT_FAILED

        try:
            stopped = self._wait_stopped()
            if stopped is not None:
                logger.debug(f"pid {self.process.pid} stopped by signal {stopped}")
                return stopped
            returncode = self.process.wait()
        except OSError as e:
            logger.error(f"Waiting for pid {self.process.pid} failed: {e}")
            return WAIT_FAILED

        # Popen reports death by signal N as -N; report the signal number.
        status = -returncode if returncode < 0 else returncode
        logger.debug(f"pid {self.process.pid} exited with status {status}")
        return status

    def _wait_stopped(self) -> Optional[int]:
        """
        Block until the child exits or is stopped, without reaping it.

        Returns the stopping signal if the child was stopped, otherwise None
        and the exited child is left for ``Popen.wait`` to reap.
        """
        if self.process.returncode is not None or not hasattr(os, "waitid"):
            return None
        info = os.waitid(os.P_PID, self.process.pid, os.WEXITED | os.WSTOPPED | os.WNOWAIT)
        if info is not None and info.si_code == os.CLD_STOPPED:
            return info.si_status
        return None


class RunningThread(RunningInstance):
    """
    A unit of work computed inside a background thread.

    The target returns the status. There is no channel to carry an
    exception back to the thread calling ``wait``, so a target that raises
    is logged and reported as FAILURE.
    """

    def __init__(self, target: Callable[[], int], streams: Streams, name: str = "subpipe-worker"):
        super().__init__(streams)
        self._target = target
        self._status = FAILURE
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            self._status = self._target()
        except Exception as e:
            logger.error(f"Background work {self._thread.name} failed: {e!r}")
            self._status = FAILURE

    def wait(self) -> int:
        self._thread.join()
        return self._status


class RunningPipe(RunningInstance):
    """Two instances wired stdout-to-stdin."""

    def __init__(self, left: RunningInstance, right: RunningInstance):
        super().__init__(Streams(
            stdin=left.streams.stdin,
            stdout=right.streams.stdout,
            stderr=right.streams.stderr,
        ))
        self.left = left
        self.right = right

    def wait(self) -> int:
        # Bitwise OR: nonzero if either side failed, not a meaningful exit code.
        left_status = self.left.wait()
        right_status = self.right.wait()
        return left_status | right_status


class RunningEmpty(RunningInstance):
    """An instance with no process or thread behind it."""

    def __init__(self, streams: Streams, status: int):
        super().__init__(streams)
        self._status = status

    def wait(self) -> int:
        return self._status
