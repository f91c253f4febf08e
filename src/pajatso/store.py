from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Tuple

logger = logging.getLogger("pajatso.store")

# Lifetime of a published challenge value, in seconds.
RECORD_TTL = 600.0


class _ReadWriteLock:
    """
    Brief: Readers-writer lock built on a single Condition.

    Inputs:
      - None

    Outputs:
      - read()/write() context managers.

    Readers share the lock; a writer excludes everyone else. Waiting writers
    block new readers so a steady stream of queries cannot starve updates.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass
class Record:
    """The single mutable TXT slot."""

    value: str = ""
    expires_at: float = 0.0
    present: bool = False


class RecordStore:
    """
    Brief: Holds at most one TXT value with a lazy expiry.

    Inputs:
      - ttl: Seconds a value stays visible after set() (default 600).
      - clock: Callable returning the current time in seconds; defaults to
        time.monotonic so wall-clock jumps do not affect expiry.

    Outputs:
      - RecordStore instance safe for use from many handler threads.

    Example:
      >>> store = RecordStore()
      >>> store.set("token")
      >>> store.get()
      ('token', True)
    """

    def __init__(
        self,
        ttl: float = RECORD_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = float(ttl)
        self._clock = clock
        self._lock = _ReadWriteLock()
        self._record = Record()

    def get(self) -> Tuple[str, bool]:
        """
        Brief: Return the current value if one is set and not yet expired.

        Inputs:
          - None

        Outputs:
          - (value, True) for a live value, ("", False) otherwise.
        """
        with self._lock.read():
            record = self._record
            if not record.present:
                logger.debug("get requested, but no TXT value set")
                return "", False
            if self._clock() > record.expires_at:
                logger.info("get requested, but TXT value expired")
                return "", False
            return record.value, True

    def set(self, value: str) -> None:
        """Overwrite the value and restart its expiry window."""
        with self._lock.write():
            self._record = Record(
                value=value,
                expires_at=self._clock() + self.ttl,
                present=True,
            )

    def delete(self) -> None:
        """Clear the value; a no-op when nothing is stored."""
        with self._lock.write():
            self._record = Record()
