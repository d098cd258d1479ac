"""
Primordium — Chemical Field
===========================
Coarse concentration grids over the world, one numpy layer per molecule-class
tag. Diffusion and advection write into a scratch layer that is swapped in, so
a pass never reads cells it has already updated.
"""

import numpy as np


DEFAULT_TAGS = ("organic", "mineral", "signal")


class ChemicalField:
    def __init__(self, world_size=512.0, resolution=64, tags=DEFAULT_TAGS):
        self.world_size = float(world_size)
        self.resolution = int(resolution)
        self.cell_size = self.world_size / self.resolution
        G = self.resolution
        self._grids = {t: np.zeros((G, G)) for t in tags}
        self._scratch = {t: np.zeros((G, G)) for t in tags}

        # In-bounds neighbour count per cell (2 at corners, 3 on edges, 4 inside)
        ones = np.pad(np.ones((G, G)), 1, mode='constant')
        self._neighbours = (ones[:-2, 1:-1] + ones[2:, 1:-1] + ones[1:-1, :-2] + ones[1:-1, 2:])
        self._cols = np.arange(G)[None, :].repeat(G, axis=0)
        self._rows = np.arange(G)[:, None].repeat(G, axis=1)

    @property
    def tags(self):
        return tuple(self._grids)

    def layer(self, tag):
        """Read-only view of one concentration layer, indexed [row=y, col=x]."""
        view = self._grids[tag].view()
        view.flags.writeable = False
        return view

    def to_grid(self, x, y):
        G = self.resolution
        gx = min(G - 1, max(0, int(x // self.cell_size)))
        gy = min(G - 1, max(0, int(y // self.cell_size)))
        return gx, gy

    def _ensure(self, tag):
        if tag not in self._grids:
            G = self.resolution
            self._grids[tag] = np.zeros((G, G))
            self._scratch[tag] = np.zeros((G, G))
        return self._grids[tag]

    def add_source(self, x, y, tag, amount):
        gx, gy = self.to_grid(x, y)
        self._ensure(tag)[gy, gx] += amount

    def get_concentration(self, x, y, tag):
        grid = self._grids.get(tag)
        if grid is None:
            return 0.0
        gx, gy = self.to_grid(x, y)
        return float(grid[gy, gx])

    def get_gradient(self, x, y, tag):
        grid = self._grids.get(tag)
        if grid is None:
            return 0.0, 0.0
        G = self.resolution
        gx, gy = self.to_grid(x, y)
        left = grid[gy, gx - 1] if gx > 0 else 0.0
        right = grid[gy, gx + 1] if gx < G - 1 else 0.0
        up = grid[gy - 1, gx] if gy > 0 else 0.0
        down = grid[gy + 1, gx] if gy < G - 1 else 0.0
        return float(right - left), float(down - up)

    def total(self, tag):
        grid = self._grids.get(tag)
        return float(grid.sum()) if grid is not None else 0.0

    # ── Transport ──

    def _swap(self, tag, out):
        self._scratch[tag] = self._grids[tag]
        self._grids[tag] = out

    def diffuse(self, rate):
        """One relaxation step toward the neighbour mean. `rate` is a scalar or a (G, G) map."""
        for tag, g in list(self._grids.items()):
            p = np.pad(g, 1, mode='constant')
            out = self._scratch[tag]
            np.add(p[:-2, 1:-1], p[2:, 1:-1], out=out)
            out += p[1:-1, :-2]
            out += p[1:-1, 2:]
            out /= self._neighbours
            out -= g
            out *= rate
            out += g
            self._swap(tag, out)

    def advect(self, flow_x, flow_y):
        """Semi-Lagrangian step; flow arrays are in cells per step, shape (G, G)."""
        G = self.resolution
        src_x = np.rint(np.clip(self._cols - flow_x, 0, G - 1)).astype(np.intp)
        src_y = np.rint(np.clip(self._rows - flow_y, 0, G - 1)).astype(np.intp)
        for tag, g in list(self._grids.items()):
            out = self._scratch[tag]
            out[...] = g[src_y, src_x]
            self._swap(tag, out)

    def tick(self, rate=0.1):
        self.diffuse(rate)
