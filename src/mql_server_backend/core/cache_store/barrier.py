"""
Write barrier separating cache puts from bulk clears.

Any number of puts may hold the shared side at once. A clear takes the
exclusive side, waits for in-flight puts to drain, and blocks new ones
until it finishes. Waiting clears take priority over new puts.
"""

import threading
from contextlib import contextmanager


class WriteBarrier:
    """Reader/writer style barrier built on a condition variable."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._shared_holders = 0
        self._exclusive_held = False
        self._exclusive_waiting = 0

    @contextmanager
    def shared(self):
        with self._cond:
            while self._exclusive_held or self._exclusive_waiting:
                self._cond.wait()
            self._shared_holders += 1
        try:
            yield
        finally:
            with self._cond:
                self._shared_holders -= 1
                if self._shared_holders == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self):
        with self._cond:
            self._exclusive_waiting += 1
            try:
                while self._exclusive_held or self._shared_holders:
                    self._cond.wait()
            finally:
                self._exclusive_waiting -= 1
            self._exclusive_held = True
        try:
            yield
        finally:
            with self._cond:
                self._exclusive_held = False
                self._cond.notify_all()
