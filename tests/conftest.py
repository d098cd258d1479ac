import os

import pytest

from primordium.config import Config
from primordium.molecule import Molecule
from primordium.neat import InnovationTracker
from primordium.rng import Rng


# Headless pygame for the viewer smoke test
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")


@pytest.fixture
def rng():
    return Rng(12345)


@pytest.fixture
def innovations():
    return InnovationTracker()


@pytest.fixture
def small_cfg(tmp_path):
    """A small, busy world: quick to tick, with organisms appearing early."""
    return Config(
        world_size=128.0,
        grid_resolution=32,
        initial_molecule_count=400,
        max_entities=1500,
        vent_count=3,
        uv_source_count=2,
        lightning_probability=0.05,
        electrical_storm_probability=0.01,
        heat_spike_probability=0.01,
        uv_burst_probability=0.01,
        spontaneous_generation_tick=20,
        spontaneous_generation_interval=10,
        max_population=60,
        metrics_interval=25,
        snapshot_interval=50,
        total_ticks=100,
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture
def make_chain():
    def build(elements, x=0.0, y=0.0, energy=0.0):
        return Molecule.chain(list(elements), x, y, energy)
    return build
