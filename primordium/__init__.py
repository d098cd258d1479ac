"""
Primordium — a seed-reproducible artificial-life engine.

Chemistry, protocells, NEAT-driven organisms and their ecology, advanced
one tick at a time by a single seeded generator.
"""

from .config import Config, ConfigError, PRESETS
from .simulation import Milestone, Simulation

__version__ = "0.1.0"

__all__ = ["Config", "ConfigError", "PRESETS", "Milestone", "Simulation", "__version__"]
