"""Reader/writer locking for state shared between request threads."""

import threading
from contextlib import contextmanager
from typing import Generator


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    Writers are preferred: once a writer is waiting, new readers block until
    it has run, so a burst of reads cannot starve a state transition.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


@contextmanager
def read_locked(lock: ReadWriteLock) -> Generator[None, None, None]:
    """Context manager holding the shared side of a ReadWriteLock.

    Example:
        with read_locked(lock):
            value = shared_state.value
    """
    lock.acquire_read()
    try:
        yield
    finally:
        lock.release_read()


@contextmanager
def write_locked(lock: ReadWriteLock) -> Generator[None, None, None]:
    """Context manager holding the exclusive side of a ReadWriteLock."""
    lock.acquire_write()
    try:
        yield
    finally:
        lock.release_write()
