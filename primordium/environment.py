"""
Primordium — Environment Map
============================
Grid of zones generated from seeded, smoothed noise. Zone type and base values
are fixed at creation; cyclical fields (temperature, UV, tidal flow, wetness)
are recomputed from the base layers every tick so they never drift.

Layers are numpy arrays indexed [row=y, col=x].
"""

import math
from collections import namedtuple

import numpy as np
from scipy.ndimage import gaussian_filter


DEEP_OCEAN = 0
HYDROTHERMAL_VENT = 1
SHALLOW_POOL = 2
TIDAL_ZONE = 3
VOLCANIC_SHORE = 4
ICE_REGION = 5

ZONE_NAMES = ("deep_ocean", "hydrothermal_vent", "shallow_pool",
              "tidal_zone", "volcanic_shore", "ice_region")

# temperature, energy_density, uv, pressure, pH, redox, catalytic_bias, diffusion, wetness
ZONE_BASE = np.array([
    [0.2, 0.1, 0.0, 0.9, 7.8, -0.2, 0.1, 0.05, 1.0],
    [0.9, 0.9, 0.0, 0.8, 3.0, 0.8, 0.7, 0.20, 0.9],
    [0.5, 0.5, 0.7, 0.3, 6.5, 0.3, 0.3, 0.15, 0.8],
    [0.4, 0.4, 0.5, 0.4, 7.0, 0.2, 0.4, 0.25, 0.8],
    [0.7, 0.6, 0.3, 0.3, 4.5, 0.6, 0.5, 0.10, 0.5],
    [0.1, 0.2, 0.4, 0.2, 7.5, 0.0, 0.2, 0.02, 0.6],
])

EnvironmentZone = namedtuple("EnvironmentZone", [
    "type", "temperature", "energy_density", "flow_x", "flow_y", "flow_speed",
    "uv_intensity", "pressure", "ph", "redox_potential", "wetness",
    "catalytic_bias", "diffusion_rate", "toxin_level", "cycle_phase",
])


def smooth_noise(rng, size, octaves=((8.0, 1.0), (4.0, 0.5), (2.0, 0.25))):
    """Fractal noise in [-1, 1] built from seeded white noise and gaussian blurs."""
    total = np.zeros((size, size))
    for sigma, weight in octaves:
        white = np.array([rng.range(-1.0, 1.0) for _ in range(size * size)]).reshape(size, size)
        total += weight * gaussian_filter(white, sigma=sigma, mode='wrap')
    peak = np.abs(total).max()
    return total / peak if peak > 0 else total


class EnvironmentMap:
    def __init__(self, rng, world_size=512.0, resolution=64,
                 wet_dry_period=5000, seasonal_period=20000):
        self.world_size = float(world_size)
        self.resolution = G = int(resolution)
        self.cell_size = self.world_size / G
        self.wet_dry_period = wet_dry_period
        self.seasonal_period = seasonal_period

        elevation = smooth_noise(rng, G)
        moisture = smooth_noise(rng, G)
        heat = smooth_noise(rng, G)
        self.zone_type = np.select(
            [elevation < -0.3,
             (elevation < -0.1) & (heat > 0.2),
             (elevation < 0.1) & (moisture > 0.0),
             elevation < 0.2,
             heat > 0.1],
            [DEEP_OCEAN, HYDROTHERMAL_VENT, SHALLOW_POOL, TIDAL_ZONE, VOLCANIC_SHORE],
            default=ICE_REGION).astype(np.int8)

        base = ZONE_BASE[self.zone_type]
        self.base_temperature = base[..., 0].copy()
        self.energy_density = base[..., 1].copy()
        self.base_uv = base[..., 2].copy()
        self.pressure = base[..., 3].copy()
        self.base_ph = base[..., 4].copy()
        self.base_redox = base[..., 5].copy()
        self.catalytic_bias = base[..., 6].copy()
        self.diffusion_rate = base[..., 7].copy()
        self.base_wetness = base[..., 8].copy()

        self.flow_dir_x = smooth_noise(rng, G, ((3.0, 1.0),)) * 0.5
        self.flow_dir_y = smooth_noise(rng, G, ((3.0, 1.0),)) * 0.5
        self.base_flow_speed = 0.1 + 0.2 * np.abs(smooth_noise(rng, G, ((4.0, 1.0),)))
        self.cycle_period = np.where(self.zone_type == TIDAL_ZONE, 500, 1000)

        self._tidal = self.zone_type == TIDAL_ZONE
        self._oscillating = self._tidal | (self.zone_type == SHALLOW_POOL)
        self._vent = self.zone_type == HYDROTHERMAL_VENT

        # Local chemistry perturbations, relaxing back to zero
        self.ph_offset = np.zeros((G, G))
        self.redox_offset = np.zeros((G, G))
        self.toxin = np.zeros((G, G))

        self.temperature = self.base_temperature.copy()
        self.uv = self.base_uv.copy()
        self.flow_speed = self.base_flow_speed.copy()
        self.wetness = self.base_wetness.copy()
        self.ph = self.base_ph.copy()
        self.redox = self.base_redox.copy()
        self.cycle_phase = np.zeros((G, G))
        self.update_cycles(0)

    # ── Cycles ──

    def update_cycles(self, tick):
        self.cycle_phase = (tick % self.cycle_period) / self.cycle_period
        wave = np.sin(self.cycle_phase * 2.0 * math.pi)

        self.uv = np.where(self._oscillating, self.base_uv * (0.5 + 0.5 * wave), self.base_uv)
        self.flow_speed = np.where(self._tidal, 0.1 + 0.3 * np.abs(wave), self.base_flow_speed)

        wet_phase = (tick % self.wet_dry_period) / self.wet_dry_period
        tide = 0.3 + 0.7 * abs(math.sin(wet_phase * math.pi))
        self.wetness = np.where(self._oscillating, tide, self.base_wetness)

        season_phase = (tick % self.seasonal_period) / self.seasonal_period
        season = 0.85 + 0.15 * math.sin(season_phase * 2.0 * math.pi)
        self.temperature = np.where(self._vent, self.base_temperature, self.base_temperature * season)

        self.ph = np.clip(self.base_ph + self.ph_offset, 0.0, 14.0)
        self.redox = np.clip(self.base_redox + self.redox_offset, -1.0, 1.0)
        self.toxin *= 0.999

    def decay_chemistry(self, rate=0.001):
        self.ph_offset *= 1.0 - rate
        self.redox_offset *= 1.0 - rate

    # ── Lookup ──

    def to_grid(self, x, y):
        G = self.resolution
        gx = int(math.floor(x / self.world_size * G)) % G
        gy = int(math.floor(y / self.world_size * G)) % G
        return min(G - 1, max(0, gx)), min(G - 1, max(0, gy))

    def zone_at(self, x, y):
        gx, gy = self.to_grid(x, y)
        speed = float(self.flow_speed[gy, gx])
        return EnvironmentZone(
            ZONE_NAMES[self.zone_type[gy, gx]],
            float(self.temperature[gy, gx]),
            float(self.energy_density[gy, gx]),
            float(self.flow_dir_x[gy, gx]),
            float(self.flow_dir_y[gy, gx]),
            speed,
            float(self.uv[gy, gx]),
            float(self.pressure[gy, gx]),
            float(self.ph[gy, gx]),
            float(self.redox[gy, gx]),
            float(self.wetness[gy, gx]),
            float(self.catalytic_bias[gy, gx]),
            float(self.diffusion_rate[gy, gx]),
            float(self.toxin[gy, gx]),
            float(self.cycle_phase[gy, gx]),
        )

    def zone_type_at(self, x, y):
        gx, gy = self.to_grid(x, y)
        return ZONE_NAMES[self.zone_type[gy, gx]]

    def zone_counts(self):
        counts = np.bincount(self.zone_type.ravel(), minlength=len(ZONE_NAMES))
        return {name: int(n) for name, n in zip(ZONE_NAMES, counts)}

    def flow_grid(self):
        """Flow velocity per cell, in world units per tick."""
        return self.flow_dir_x * self.flow_speed, self.flow_dir_y * self.flow_speed

    def diffusion_map(self, base_rate):
        """Per-cell field diffusion rate: `base_rate` scaled by zone mixing relative to the map mean."""
        return np.clip(base_rate * self.diffusion_rate / self.diffusion_rate.mean(), 0.0, 1.0)

    # ── Local perturbations ──

    def modify_local_chemistry(self, x, y, ph_delta, redox_delta):
        gx, gy = self.to_grid(x, y)
        self.ph_offset[gy, gx] += ph_delta
        self.redox_offset[gy, gx] += redox_delta
        self.ph[gy, gx] = min(14.0, max(0.0, self.base_ph[gy, gx] + self.ph_offset[gy, gx]))
        self.redox[gy, gx] = min(1.0, max(-1.0, self.base_redox[gy, gx] + self.redox_offset[gy, gx]))

    def add_toxin(self, x, y, amount):
        gx, gy = self.to_grid(x, y)
        self.toxin[gy, gx] = min(5.0, self.toxin[gy, gx] + amount)
