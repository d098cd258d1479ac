"""
Primordium — Seeded RNG
=======================
Mulberry32: a 32-bit mix-based generator. Every stochastic decision in a run
draws from one instance, so a run is reproducible from its seed alone.
"""

import math
import secrets


_MASK32 = 0xFFFFFFFF
_TWO_32 = 4294967296.0


def _imul(a, b):
    # Low 32 bits of the product, as unsigned
    return (a * b) & _MASK32


class Rng:
    def __init__(self, seed=None):
        if seed is None:
            seed = secrets.randbelow(2 ** 31 - 1)
        self._seed = int(seed)
        self._state = self._seed & _MASK32

    @property
    def seed(self):
        return self._seed

    def next(self):
        """Uniform float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def range(self, lo, hi):
        return lo + self.next() * (hi - lo)

    def int(self, lo, hi):
        """Integer in [lo, hi)."""
        return int(math.floor(self.range(lo, hi)))

    def bool(self, p=0.5):
        return self.next() < p

    def gaussian(self, mean=0.0, std=1.0):
        u1 = self.next()
        u2 = self.next()
        z = math.sqrt(-2.0 * math.log(max(u1, 1e-10))) * math.cos(2.0 * math.pi * u2)
        return mean + z * std

    def pick(self, seq):
        return seq[self.int(0, len(seq))]

    def shuffle(self, seq):
        out = list(seq)
        for i in range(len(out) - 1, 0, -1):
            j = self.int(0, i + 1)
            out[i], out[j] = out[j], out[i]
        return out

    def fork(self):
        """Independent generator seeded from one draw of this one."""
        return Rng(self.int(0, 2 ** 31 - 1))

    def get_state(self):
        return self._state

    def set_state(self, state):
        self._state = int(state) & _MASK32
