"""
Lightweight spatial indexing (grid bucket) for projected map points.

The cluster index builds one of these per zoom level. Points live in Web-Mercator
"world" units where the whole map is the unit square (x grows east, y grows south).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


def lng_x(lng: float) -> float:
    """Longitude in degrees -> world x in 0..1."""
    return float(lng) / 360.0 + 0.5


def lat_y(lat: float) -> float:
    """Latitude in degrees -> world y in 0..1 (clamped near the poles)."""
    s = math.sin(math.radians(float(lat)))
    if s >= 1.0:
        return 0.0
    if s <= -1.0:
        return 1.0
    y = 0.5 - 0.25 * math.log((1 + s) / (1 - s)) / math.pi
    return 0.0 if y < 0 else 1.0 if y > 1 else y


def x_lng(x: float) -> float:
    return (float(x) - 0.5) * 360.0


def y_lat(y: float) -> float:
    y2 = (180.0 - float(y) * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


@dataclass(frozen=True)
class _Entry(Generic[T]):
    pos: int
    item: T
    x: float
    y: float


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: list[T],
        *,
        get_xy: Callable[[T], tuple[float, float]],
        cell_size: float,
    ):
        if float(cell_size) <= 0:
            raise ValueError("cell_size must be > 0")
        self._cell_size = float(cell_size)
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}
        self._entries: list[_Entry[T]] = []

        for pos, it in enumerate(items):
            x, y = get_xy(it)
            e = _Entry(pos=pos, item=it, x=float(x), y=float(y))
            self._entries.append(e)
            self._cells.setdefault(self._cell_key_xy(e.x, e.y), []).append(e)

    def __len__(self) -> int:
        return len(self._entries)

    def _cell_key_xy(self, x: float, y: float) -> tuple[int, int]:
        return (int(math.floor(x / self._cell_size)), int(math.floor(y / self._cell_size)))

    def query_within(self, *, x: float, y: float, radius: float) -> list[T]:
        """Items whose projected position lies within `radius` (inclusive), in insertion order."""
        r = float(radius)
        if r < 0:
            return []
        cx, cy = self._cell_key_xy(x, y)
        steps = int(math.ceil(r / self._cell_size))
        r2 = r * r

        hits: list[tuple[int, T]] = []
        if (2 * steps + 1) ** 2 > len(self._entries):
            for e in self._entries:
                if (e.x - x) ** 2 + (e.y - y) ** 2 <= r2:
                    hits.append((e.pos, e.item))
            return [it for _, it in hits]

        for dx in range(-steps, steps + 1):
            for dy in range(-steps, steps + 1):
                cell = self._cells.get((cx + dx, cy + dy))
                if not cell:
                    continue
                for e in cell:
                    if (e.x - x) ** 2 + (e.y - y) ** 2 <= r2:
                        hits.append((e.pos, e.item))
        hits.sort(key=lambda h: h[0])
        return [it for _, it in hits]

    def query_range(self, *, min_x: float, min_y: float, max_x: float, max_y: float) -> list[T]:
        """Items inside the axis-aligned box (inclusive), in insertion order."""
        x0, y0 = self._cell_key_xy(min_x, min_y)
        x1, y1 = self._cell_key_xy(max_x, max_y)

        def inside(e: _Entry[T]) -> bool:
            return min_x <= e.x <= max_x and min_y <= e.y <= max_y

        # Scanning the entries is cheaper than walking a huge empty cell range.
        if (x1 - x0 + 1) * (y1 - y0 + 1) > len(self._entries):
            return [e.item for e in self._entries if inside(e)]

        hits: list[tuple[int, T]] = []
        for cx in range(x0, x1 + 1):
            for cy in range(y0, y1 + 1):
                for e in self._cells.get((cx, cy), ()):
                    if inside(e):
                        hits.append((e.pos, e.item))
        hits.sort(key=lambda h: h[0])
        return [it for _, it in hits]
