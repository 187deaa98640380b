# bitgraph/common/history.py
from __future__ import annotations

import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Generic, Iterator, Optional, Tuple, TypeVar

T = TypeVar("T")


class RWLock:
    """
    Reader/writer lock: any number of readers, or exactly one writer.
    Waiting writers block new readers so a steady read load cannot starve them.
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


class History(Generic[T]):
    """
    Bounded most-recently-used list with promote-on-push semantics.

    - push(x) moves an existing equal item to the front instead of duplicating it
    - once `limit` items are held, pushing a new one evicts the oldest
    - snapshot() returns a consistent copy, most recent first

    Safe to share between threads: reads run concurrently, mutations are exclusive.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"history limit must be >= 1, got {limit}")
        self._limit = limit
        self._items: Deque[T] = deque()
        self._lock = RWLock()

    @property
    def limit(self) -> int:
        return self._limit

    # ---- mutation -------------------------------------------------------------
    def push(self, item: T) -> Optional[T]:
        """Insert `item` as most recent. Returns the evicted item, if any."""
        with self._lock.write():
            try:
                self._items.remove(item)
            except ValueError:
                pass
            evicted = self._items.pop() if len(self._items) >= self._limit else None
            self._items.appendleft(item)
            return evicted

    def clear(self) -> None:
        with self._lock.write():
            self._items.clear()

    # ---- observers ------------------------------------------------------------
    def len(self) -> int:
        with self._lock.read():
            return len(self._items)

    def __len__(self) -> int:
        return self.len()

    def is_empty(self) -> bool:
        with self._lock.read():
            return not self._items

    def snapshot(self) -> Tuple[T, ...]:
        with self._lock.read():
            return tuple(self._items)

    def __contains__(self, item: object) -> bool:
        with self._lock.read():
            return item in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"History(limit={self._limit}, items={list(self.snapshot())!r})"
