from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator, Sequence

from .models import Position

HISTORY_CAPACITY = 50


def append(
    history: Sequence[Position], pos: Position, capacity: int = HISTORY_CAPACITY
) -> tuple[Position, ...]:
    """Yeni bir tuple döndürür; kapasite aşılırsa en eski kayıt düşer."""
    buf = HistoryBuffer(capacity, history)
    buf.append(pos)
    return buf.snapshot()


class HistoryBuffer:
    """
    Sabit kapasiteli, zaman sıralı (en yeni sonda) konum penceresi.
    deque(maxlen) ile O(1) ekle-ve-çıkar.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY, items: Iterable[Position] = ()):
        if capacity <= 0:
            raise ValueError(f"capacity pozitif olmalı: {capacity}")
        self.capacity = capacity
        self._buf: deque[Position] = deque(items, maxlen=capacity)

    def append(self, pos: Position) -> None:
        self._buf.append(pos)

    def recent(self, n: int) -> tuple[Position, ...]:
        if n <= 0:
            return ()
        return tuple(self._buf)[-n:]

    def snapshot(self) -> tuple[Position, ...]:
        return tuple(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __iter__(self) -> Iterator[Position]:
        return iter(tuple(self._buf))
