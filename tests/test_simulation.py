"""
End-to-end tests for the simulation loop
"""

import json

import numpy as np
import pytest

from primordium import neat
from primordium.config import Config
from primordium.elements import C, H, O
from primordium.extinction import ASTEROID
from primordium.genome import Genome, GeneType, make_gene
from primordium.metabolism import MetabolicPathway
from primordium.molecule import Molecule
from primordium.organism import INGESTION, SECRETION, SIGNAL, Organism
from primordium.polymer import InformationPolymer, Replicator
from primordium.protocell import Protocell
from primordium.simulation import CHEMICAL_MILESTONES, EMERGENCE_FIDELITY, MILESTONES, Simulation


def fingerprint(sim):
    # Ids come from a process-wide counter, so compare everything but ids
    return (
        sim.tick_count,
        len(sim.molecules),
        len(sim.protocells),
        sim.manager.population,
        round(sim.total_energy(), 6),
        [(m.type, m.tick) for m in sim.milestones],
        sorted(round(m.energy, 9) for m in sim.molecules),
    )


class TestDeterminism:
    def test_same_seed_same_run(self, small_cfg):
        a = Simulation(small_cfg)
        b = Simulation(small_cfg)
        for _ in range(60):
            a.tick()
            b.tick()
        assert fingerprint(a) == fingerprint(b)
        assert a.stats_history == b.stats_history

    def test_seed_argument_overrides_config(self, small_cfg):
        a = Simulation(small_cfg, seed=7)
        b = Simulation(Config(**dict(small_cfg.as_dict(), random_seed=7)))
        assert a.seed == 7
        a.skip_ticks(20)
        b.skip_ticks(20)
        assert fingerprint(a) == fingerprint(b)

    def test_skip_ticks_matches_ticks(self, small_cfg):
        a = Simulation(small_cfg)
        b = Simulation(small_cfg)
        for _ in range(30):
            a.tick()
        b.skip_ticks(30)
        assert fingerprint(a) == fingerprint(b)


class TestEnergyAccounting:
    def test_ledger_balance_constant(self, small_cfg):
        sim = Simulation(small_cfg)
        start = sim.ledger.balance(sim.total_energy())
        for _ in range(100):
            sim.tick()
            assert sim.ledger.balance(sim.total_energy()) == pytest.approx(start, abs=1e-4)

    def test_sources_inject(self, small_cfg):
        sim = Simulation(small_cfg)
        sim.skip_ticks(5)
        assert sim.ledger.injections["energy_sources"] > 0
        assert sim.ledger.dissipations["molecular_decay"] > 0


class TestLifecycle:
    def test_entity_cap(self, small_cfg):
        sim = Simulation(small_cfg)
        for _ in range(100):
            sim.tick()
            assert len(sim.molecules) <= small_cfg.max_entities
            assert sim.manager.population <= small_cfg.max_population

    def test_milestones_fire_once(self, small_cfg):
        sim = Simulation(small_cfg)
        sim.skip_ticks(100)
        kinds = [m.type for m in sim.milestones]
        assert len(kinds) == len(set(kinds))
        assert set(kinds) <= set(MILESTONES)
        ticks = [m.tick for m in sim.milestones]
        assert ticks == sorted(ticks)

    def test_metrics_interval(self, small_cfg):
        sim = Simulation(small_cfg)
        sim.skip_ticks(100)
        assert [s["t"] for s in sim.stats_history] == [25, 50, 75, 100]
        row = sim.stats_history[-1]
        for key in ("born", "died", "avg_chain", "energy_flux", "signals", "signals_heard"):
            assert key in row
        assert row["signals"] == len(sim.signals)

    @pytest.mark.slow
    def test_default_world_makes_organic_chemistry(self):
        """Seed 42 on defaults: some organic-chemistry milestone within 1000 ticks."""
        cfg = Config()
        sim = Simulation(cfg)
        for _ in range(1000):
            sim.tick()
            assert len(sim.molecules) <= cfg.max_entities
        assert any(m.type in CHEMICAL_MILESTONES for m in sim.milestones)


class TestQueries:
    @pytest.fixture
    def sim(self, small_cfg):
        s = Simulation(small_cfg)
        s.skip_ticks(30)
        return s

    def test_collections_are_tuples(self, sim):
        for view in (sim.molecules, sim.protocells, sim.organisms, sim.milestones,
                     sim.energy_sources):
            assert isinstance(view, tuple)

    def test_energy_sources(self, sim, small_cfg):
        kinds = [s.kind for s in sim.energy_sources]
        assert len(kinds) == small_cfg.vent_count + small_cfg.uv_source_count

    def test_nearby(self, sim):
        mol = sim.molecules[0]
        assert mol in sim.nearby_molecules(mol.x, mol.y, 0.5)
        for other in sim.nearby_molecules(mol.x, mol.y, 4.0):
            assert (other.x - mol.x) ** 2 + (other.y - mol.y) ** 2 <= 16.0 + 1e-9

    def test_zone_and_field(self, sim):
        zone = sim.zone_at(10.0, 10.0)
        assert zone.type == sim.env.zone_type_at(10.0, 10.0)
        assert sim.concentration("organic", 10.0, 10.0) >= 0.0
        assert len(sim.gradient("organic", 10.0, 10.0)) == 2

    def test_grids_are_copies(self, sim):
        before = sim.env.zone_type.copy()
        zones = sim.zone_map()
        zones[:] = 99
        np.testing.assert_array_equal(sim.env.zone_type, before)
        toxin = sim.toxin_map()
        toxin[:] = 99.0
        assert sim.env.toxin.max() <= 5.0
        with pytest.raises(ValueError):
            sim.field_layer("organic")[0, 0] = 1.0

    def test_stats(self, sim):
        stats = sim.get_stats()
        assert stats["tick"] == 30
        assert stats["molecules"] == len(sim.molecules)
        assert stats["population"] == len(sim.organisms)
        assert stats["total_energy"] == pytest.approx(sim.total_energy())
        assert stats["metrics"]["t"] == 25

    def test_snapshot_is_plain_data(self, sim):
        snap = sim.snapshot()
        json.dumps(snap)
        assert len(snap["molecules"]) == len(sim.molecules)
        sim.tick()
        assert snap["tick"] == 30


def creature(x, y, *genes, energy=5.0):
    """Size-1 body with no wiring beyond the given genes."""
    neural = neat.NeatGenome([neat.NodeGene(0, neat.INPUT), neat.NodeGene(1, neat.OUTPUT)], [])
    genome = Genome([make_gene(GeneType.BODY_SIZE, (1.0,))] + list(genes), neural)
    return Organism(genome, x, y, energy=energy)


def ripe_cell(sim, fidelity):
    cell = Protocell(60.0, 60.0, 20, energy=4.0)
    cell.interior = [Molecule.single(el, 60.0, 60.0, energy=0.5) for el in (C, H, O)]
    cell.metabolism.add_pathway(MetabolicPathway(("C", "H"), (), 1.0, 0.5, 20))
    cell.replicators = [Replicator(InformationPolymer([0, 1, 2, 3], fidelity))]
    cell.age = sim.cfg.organism_emergence_age + 1
    return cell


class TestEnvironmentCoupling:
    def test_zone_driven_diffusion(self, small_cfg):
        sim = Simulation(small_cfg)
        assert sim.diffusion.shape == (32, 32)
        np.testing.assert_allclose(sim.diffusion, sim.env.diffusion_map(small_cfg.diffusion_rate))
        # Faster-mixing zones never diffuse slower
        order = np.argsort(sim.env.diffusion_rate.ravel(), kind="stable")
        assert np.all(np.diff(sim.diffusion.ravel()[order]) >= 0)

    def test_lightning_strike(self, small_cfg):
        sim = Simulation(small_cfg)
        start = sim.ledger.balance(sim.total_energy())
        before = len(sim.molecules)
        sim._lightning_strike(1)
        assert before + 5 <= len(sim.molecules) <= before + 7
        assert sim.ledger.injections["lightning"] > 0
        assert sim.ledger.balance(sim.total_energy()) == pytest.approx(start, abs=1e-6)


class TestEmergenceAndOrgans:
    def test_emergence_needs_faithful_replicator(self, small_cfg):
        sim = Simulation(small_cfg)
        sim.cfg.organism_emergence_probability = 1.0
        sloppy = ripe_cell(sim, EMERGENCE_FIDELITY - 0.1)
        faithful = ripe_cell(sim, 0.9)
        sim._protocells = [sloppy, faithful]
        sim._organism_emergence(1)
        assert sim.protocells == (sloppy,)
        assert sim.manager.population == 1

    def test_predation_needs_ingestion_organ(self, small_cfg):
        sim = Simulation(small_cfg)
        hetero = make_gene(GeneType.METABOLISM_HETEROTROPHY, (0.5,))
        prey = creature(50.0, 50.0)
        mouthless = creature(50.5, 50.0, hetero)
        mouthless.actuator_outputs[INGESTION] = 1.0
        sim._predation(mouthless, [mouthless, prey])
        assert prey.energy == 5.0

        hunter = creature(50.5, 50.0, hetero, make_gene(GeneType.ACTUATOR_INGESTION, (0.5,)))
        hunter.actuator_outputs[INGESTION] = 1.0
        sim._predation(hunter, [hunter, prey])
        assert prey.energy == pytest.approx(5.0 * 0.3)
        assert hunter.energy == pytest.approx(5.0 + 3.5)

    def test_secretion_needs_secretion_organ(self, small_cfg):
        sim = Simulation(small_cfg)
        toxic = make_gene(GeneType.DEFENSE_TOXIN, (0.9,))
        org = creature(40.0, 40.0, toxic)
        org.actuator_outputs[SECRETION] = 1.0
        before = sim.env.toxin.copy()
        sim._secrete(org)
        np.testing.assert_array_equal(sim.env.toxin, before)

        org = creature(40.0, 40.0, toxic, make_gene(GeneType.ACTUATOR_SECRETION, (0.5,)))
        org.actuator_outputs[SECRETION] = 1.0
        sim._secrete(org)
        assert sim.env.zone_at(40.0, 40.0).toxin_level > before[sim.env.to_grid(40.0, 40.0)[::-1]]


class TestSignalling:
    def test_emitted_signal_is_heard(self, small_cfg):
        sim = Simulation(small_cfg)
        talker = creature(30.0, 30.0, make_gene(GeneType.SIGNAL_EMISSION, (0.8,)))
        talker.actuator_outputs[SIGNAL] = 0.9
        listener = creature(35.0, 30.0, make_gene(GeneType.SIGNAL_RECEPTION, (1.0, 20.0)))
        deaf = creature(35.0, 30.0)

        sim._secrete(talker)
        assert len(sim.signals) == 1
        assert sim.field_layer("signal").sum() > 0.0

        sim.communication.begin_tick(1)
        event, reading = sim._listen(listener)
        assert event.emitter_id == talker.id
        assert reading[0] > 0.0
        assert sim._listen(deaf) == (None, None)

        sim._check_milestones(1, [])
        assert "COMMUNICATION" in [m.type for m in sim.milestones]


class TestExtinctionRemoval:
    def test_victims_leave_population(self, small_cfg, monkeypatch):
        sim = Simulation(small_cfg)
        for i in range(6):
            sim.manager.add(creature(10.0 + 5 * i, 20.0))
        start = sim.ledger.balance(sim.total_energy())

        sim.extinction.start_event(ASTEROID, 0, sim.manager.population, 1)
        monkeypatch.setattr(sim.extinction, "kill_probability", lambda tick: 1.0)
        sim._update_extinction(1)

        assert sim.organisms == ()
        assert sim.manager.total_died == 6
        assert sim.ledger.dissipations["death"] == pytest.approx(30.0)
        assert sim.ledger.balance(sim.total_energy()) == pytest.approx(start)


class TestSnapshotFeeds:
    def test_signals_and_milestones(self, small_cfg):
        sim = Simulation(small_cfg)
        sim.skip_ticks(30)
        snap = sim.snapshot()
        json.dumps(snap)
        assert len(snap["signals"]) == len(sim.signals)
        assert [m["type"] for m in snap["milestones"]] == [m.type for m in sim.milestones]
        assert set(snap["communication"]) == {"active", "emitted", "heard", "protocols"}
        for cell in snap["protocells"]:
            assert "osmotic_pressure" in cell and "replication_potential" in cell
