"""
Primordium — Phenotypic plasticity
==================================
Within-lifetime trait tuning to the local zone. The swing is bounded by the
mean regulatory level of the organism's enabled genes (at most +-30 %).
Modifiers are set on the organism for one tick and reset afterwards; the
genome and phenotype are never touched.
"""

from collections import namedtuple


PlasticityModifiers = namedtuple("PlasticityModifiers", [
    "metabolic_efficiency", "speed", "shell", "sensor_sensitivity"])

NEUTRAL = PlasticityModifiers(1.0, 1.0, 0.0, 1.0)

OPTIMAL_TEMPERATURE = {
    "chemosynthesis": 0.7,
    "photosynthesis": 0.45,
    "heterotrophy": 0.5,
    "fermentation": 0.3,
}


def _clamp(v, lo, hi):
    return min(hi, max(lo, v))


def compute_modifiers(org, zone):
    genes = [g for g in org.genome.genes if g.enabled]
    if not genes:
        return NEUTRAL
    span = sum(g.regulatory for g in genes) / len(genes) * 0.3

    optimum = OPTIMAL_TEMPERATURE.get(org.phenotype.metabolism_type, 0.5)
    efficiency = _clamp(1.0 - abs(zone.temperature - optimum) * 0.5, 1.0 - span, 1.0)

    speed = 1.0
    shell = 0.0
    sensitivity = 1.0
    if zone.uv_intensity > 0.5:
        speed = 1.0 - span * 0.3 * zone.uv_intensity
        shell = span * 0.1 * zone.uv_intensity
    if zone.pressure > 0.6:
        speed *= _clamp(1.0 - (zone.pressure - 0.6) * span, 0.7, 1.0)
        sensitivity = 1.0 + (zone.pressure - 0.6) * span
    if zone.toxin_level > 0.3:
        shell += span * 0.15 * zone.toxin_level

    return PlasticityModifiers(efficiency, speed, shell, sensitivity)


def apply(org, zone):
    mods = compute_modifiers(org, zone)
    org.efficiency_mod = mods.metabolic_efficiency
    org.speed_mod = mods.speed
    org.shell_mod = mods.shell
    org.sensitivity_mod = mods.sensor_sensitivity
    return mods


def reset(org):
    org.reset_modifiers()
