from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Iterator


class BoundedHistory:
    """Append-only log that keeps at most ``limit`` items, dropping the oldest."""

    def __init__(self, limit: int, items: Iterable[Any] = ()) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1.")
        self.limit = limit
        self._items: deque[Any] = deque(items, maxlen=limit)

    def append(self, item: Any) -> None:
        self._items.append(item)

    def recent(self, count: int | None = None) -> list[Any]:
        """Newest first."""
        items = list(reversed(self._items))
        if count is None:
            return items
        return items[: max(0, count)]

    def clear(self) -> None:
        self._items.clear()

    def trim(self, keep: int) -> None:
        """Drop everything except the newest ``keep`` items."""
        while len(self._items) > max(0, keep):
            self._items.popleft()

    def to_list(self) -> list[Any]:
        return list(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]
