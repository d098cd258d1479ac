"""
Primordium — Energy Sources
===========================
Point sources (thermal vents, UV patches, lightning strikes) whose output
falls off linearly with distance and flickers with their reliability.
"""

import math

import numpy as np

from .elements import H, N, O, P, S


VENT = "vent"
UV = "uv"
LIGHTNING = "lightning"


class EnergySource:
    def __init__(self, kind, x, y, radius, power, reliability, minerals=(), temperature=0.0):
        self.kind = kind
        self.x = float(x)
        self.y = float(y)
        self.radius = float(radius)
        self.power = float(power)
        self.reliability = float(reliability)
        self.minerals = tuple(minerals)
        self.temperature = float(temperature)

    def __repr__(self):
        return f"EnergySource({self.kind}, ({self.x:.1f}, {self.y:.1f}), power={self.power})"

    def get_energy_at(self, x, y, tick):
        d = math.hypot(x - self.x, y - self.y)
        if d > self.radius:
            return 0.0
        falloff = 1.0 - d / self.radius
        rel = self.reliability
        flicker = rel + (1.0 - rel) * (math.sin(tick * 0.01 * rel) + 1.0) * 0.5
        return self.power * falloff * flicker

    def get_energy_array(self, xs, ys, tick):
        """`get_energy_at` over arrays of positions."""
        d = np.hypot(xs - self.x, ys - self.y)
        falloff = np.maximum(0.0, 1.0 - d / self.radius)
        rel = self.reliability
        flicker = rel + (1.0 - rel) * (math.sin(tick * 0.01 * rel) + 1.0) * 0.5
        return self.power * falloff * flicker

    def emit_minerals(self, rng):
        return [m for m in self.minerals if rng.bool(0.3)]

    # ── Factories ──

    @classmethod
    def vent(cls, x, y, power=10.0):
        return cls(VENT, x, y, 40.0, power, 0.8, (S, H, P), 350.0)

    @classmethod
    def uv(cls, x, y, power=5.0):
        return cls(UV, x, y, 100.0, power, 0.6, (), 50.0)

    @classmethod
    def lightning(cls, x, y, power=100.0):
        return cls(LIGHTNING, x, y, 20.0, power, 0.1, (N, O), 1000.0)
