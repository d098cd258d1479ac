"""
Primordium — Spatial Hash
=========================
Uniform-grid index from 2D float positions to entities. Cells are keyed by
integer (cx, cy) tuples. Entities expose `x`, `y` and `id`.
"""

import math


class SpatialHash:
    def __init__(self, cell_size):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = float(cell_size)
        self._cells = {}
        self._where = {}

    def _key(self, x, y):
        return (int(math.floor(x / self.cell_size)), int(math.floor(y / self.cell_size)))

    def clear(self):
        self._cells.clear()
        self._where.clear()

    def insert(self, entity):
        key = self._key(entity.x, entity.y)
        self._cells.setdefault(key, []).append(entity)
        self._where[entity.id] = key

    def remove(self, entity):
        key = self._where.pop(entity.id, None)
        if key is None:
            return False
        bucket = self._cells[key]
        for i, e in enumerate(bucket):
            if e.id == entity.id:
                del bucket[i]
                break
        if not bucket:
            del self._cells[key]
        return True

    def query(self, x, y, radius):
        """Entities whose Euclidean distance to (x, y) is <= radius."""
        r2 = radius * radius
        cx0, cy0 = self._key(x - radius, y - radius)
        cx1, cy1 = self._key(x + radius, y + radius)
        found = []
        for cx in range(cx0, cx1 + 1):
            for cy in range(cy0, cy1 + 1):
                bucket = self._cells.get((cx, cy))
                if not bucket:
                    continue
                for e in bucket:
                    dx = e.x - x
                    dy = e.y - y
                    if dx * dx + dy * dy <= r2:
                        found.append(e)
        return found

    def query_rect(self, x0, y0, x1, y1):
        """Entities inside the inclusive rectangle [x0, x1] x [y0, y1]."""
        cx0, cy0 = self._key(x0, y0)
        cx1, cy1 = self._key(x1, y1)
        found = []
        for cx in range(cx0, cx1 + 1):
            for cy in range(cy0, cy1 + 1):
                for e in self._cells.get((cx, cy), ()):
                    if x0 <= e.x <= x1 and y0 <= e.y <= y1:
                        found.append(e)
        return found

    def get_all(self):
        return [e for bucket in self._cells.values() for e in bucket]

    def __len__(self):
        return len(self._where)

    def __contains__(self, entity):
        return entity.id in self._where
