"""
Primordium — Simulation
=======================
Owns every subsystem and advances them with one seeded generator.

Per tick, strictly in this order:
    environment cycles -> chemistry -> protocells -> organisms
    -> ecology / symbiosis / coevolution / population genetics (periodic)
    -> milestones -> metrics -> field transport -> extinction -> emergence

Every energy change that is not a transfer between two entities is booked
in `self.ledger`, so `ledger.balance(total_energy())` stays constant.
State is only meant to be read between ticks.
"""

import math
from collections import namedtuple

import numpy as np

from . import plasticity
from .catalysis import Catalysis
from .chemical_field import ChemicalField
from .config import Config
from .coevolution import NO_ARMS_RACE, CoevolutionSystem
from .communication import CommunicationSystem
from .ecosystem import Ecosystem, FoodWeb, ResourceCycle
from .elements import C, ELEMENT_PROPERTIES, ELEMENTS, H, N, O, S
from .energy_sources import UV, EnergySource
from .environment import HYDROTHERMAL_VENT, ZONE_NAMES, EnvironmentMap
from .extinction import ExtinctionEventSystem
from .genome import CHEMOSYNTHESIS, FERMENTATION, HETEROTROPHY, PHOTOSYNTHESIS
from .ledger import EnergyLedger
from .molecule import Formation, Molecule
from .neat import InnovationTracker
from .organism import INGESTION, SECRETION, SensorContext, normalize
from .organism_manager import OrganismManager
from .phylogeny import PhylogeneticTree
from .polymer import InformationPolymer, Replicator
from .population_genetics import PopulationGenetics
from .protocell import DEFAULT_PERMEABILITY, Protocell, ProtoSelection
from .reactions import ReactionSystem, hydrolysis_chance
from .rng import Rng
from .spatial_hash import SpatialHash
from .speciation import SpeciationSystem
from .symbiosis import MIN_UPDATES, SymbiosisSystem


# Periodic schedules (ticks)
FORMATION_INTERVAL = 100
LEAKAGE_INTERVAL = 10
ATTACK_INTERVAL = 25
SELECTION_PRUNE_INTERVAL = 100
SPECIATION_INTERVAL = 500
ECOLOGY_INTERVAL = 100
SYMBIOSIS_INTERVAL = 10
COEVOLUTION_INTERVAL = 1000
POPGEN_INTERVAL = 500
ADVECTION_INTERVAL = 10
MINERAL_INTERVAL = 50
CACHE_SWEEP_INTERVAL = 1000
PHYLOGENY_PRUNE_INTERVAL = 10000
PHYLOGENY_MAX_NODES = 5000

# Reach of the cross-protocell passes (world units)
NEIGHBOUR_RANGE = 8.0

# Lead replicator fidelity a protocell needs to found an organism lineage
EMERGENCE_FIDELITY = 0.7

Milestone = namedtuple("Milestone", ["type", "tick", "description"])

MILESTONES = {
    "AMINO_ACID": "First amino-acid-like molecule (C-N bond, 4+ atoms)",
    "FATTY_ACID": "First fatty-acid-like molecule (long carbon chain)",
    "NUCLEOTIDE": "First nucleotide-like molecule (phosphorus ring)",
    "POLYMER": "First polymer with a chain of 5+ atoms",
    "PROTOCELL": "First protocell holding 5+ molecules",
    "REPLICATOR": "First replicator copied itself",
    "PROTOCELL_DIVISION": "First protocell division",
    "METABOLISM": "First protocell with a working metabolic pathway",
    "FIRST_ORGANISM": "First genome-bearing organism",
    "PREDATION": "First kill by a predator",
    "SPECIATION": "Population split into two species",
    "PHOTOSYNTHESIS": "First photosynthetic organism",
    "NEURAL_HIDDEN": "First controller with a hidden neuron",
    "FOOD_WEB": "Three trophic levels established",
    "ECOSYSTEM": "Five coexisting species",
    "MASS_EXTINCTION": "Mass extinction event began",
    "SYMBIOSIS": "First established symbiotic bond",
    "GENETIC_BOTTLENECK": "Population halved between genetic snapshots",
    "COMMUNICATION": "First signal heard by another organism",
}

CHEMICAL_MILESTONES = ("AMINO_ACID", "FATTY_ACID", "NUCLEOTIDE", "POLYMER")


class Simulation:
    def __init__(self, cfg=None, seed=None):
        self.cfg = cfg or Config()
        c = self.cfg
        self.rng = Rng(c.random_seed if seed is None else seed)
        self.seed = self.rng.seed
        self._tick = 0

        self.ledger = EnergyLedger()
        self.innovations = InnovationTracker()

        # ── Chemistry ──
        self.catalysis = Catalysis()
        self.reactions = ReactionSystem(c, self.catalysis)
        self.env = EnvironmentMap(self.rng.fork(), c.world_size, c.grid_resolution,
                                  c.wet_dry_period, c.seasonal_period)
        self.field = ChemicalField(c.world_size, c.grid_resolution)
        self.diffusion = self.env.diffusion_map(c.diffusion_rate)
        self.sources = []
        self._molecules = []
        self.molecule_index = SpatialHash(c.spatial_hash_cell_size)

        # ── Proto-life ──
        self._protocells = []
        self.selection = ProtoSelection()

        # ── Organisms and ecology ──
        self.manager = OrganismManager(c, self.rng, self.innovations, self.ledger)
        self.speciation = SpeciationSystem(c.speciation_distance_threshold,
                                           c.neat_c1, c.neat_c2, c.neat_c3)
        self.phylogeny = PhylogeneticTree()
        self.popgen = PopulationGenetics()
        self.ecosystem = Ecosystem()
        self.food_web = FoodWeb()
        self.resource_cycle = ResourceCycle()
        self.extinction = ExtinctionEventSystem()
        self.symbiosis = SymbiosisSystem()
        self.coevolution = CoevolutionSystem()
        self.arms_race = NO_ARMS_RACE
        self.communication = CommunicationSystem(c.signal_threshold, c.signal_lifetime,
                                                 c.spatial_hash_cell_size)

        # Stats
        self._milestones = []
        self._fired = set()
        self._new_molecules = []
        self._divisions = 0
        self.total_reactions = 0
        self.total_kills = 0
        self.stats_history = []

        self._init_world()

    def _init_world(self):
        c = self.cfg
        rng = self.rng
        ws = c.world_size

        for _ in range(c.vent_count):
            self.sources.append(EnergySource.vent(
                rng.range(0.1 * ws, 0.9 * ws), rng.range(0.1 * ws, 0.9 * ws), c.vent_power))
        for _ in range(c.uv_source_count):
            self.sources.append(EnergySource.uv(
                rng.range(0.2 * ws, 0.8 * ws), rng.range(0.2 * ws, 0.8 * ws), c.uv_intensity_max))

        for _ in range(c.initial_molecule_count):
            element = rng.pick(ELEMENTS)
            if rng.next() > ELEMENT_PROPERTIES[element].abundance * 2.0:
                continue
            mol = Molecule.single(element, rng.range(0.0, ws), rng.range(0.0, ws),
                                  rng.range(0.0, 1.0))
            if not self._add_molecule(mol):
                break

        for src in self.sources:
            for _ in range(10):
                x = self._wrap(src.x + rng.gaussian(0.0, src.radius * 0.5))
                y = self._wrap(src.y + rng.gaussian(0.0, src.radius * 0.5))
                self.field.add_source(x, y, "organic", 0.3)
                self.field.add_source(x, y, "mineral", 0.2)

    # ── Helpers ──

    def _wrap(self, v):
        return v % self.cfg.world_size

    def _add_molecule(self, mol):
        """Admit a free molecule under the entity cap. Refusal is silent."""
        if len(self._molecules) >= self.cfg.max_entities:
            return False
        self._molecules.append(mol)
        self.molecule_index.insert(mol)
        return True

    def _spawn_molecule(self, mol, channel):
        """Admit a molecule created from outside the system and book its energy."""
        if not self._add_molecule(mol):
            return False
        self.ledger.inject(channel, mol.energy)
        self._new_molecules.append(mol)
        return True

    def _spill(self, cell, molecules, channel):
        # Released contents go back to the free pool, or their energy is lost
        for mol in molecules:
            mol.x = self._wrap(cell.x + self.rng.range(-1.0, 1.0))
            mol.y = self._wrap(cell.y + self.rng.range(-1.0, 1.0))
            mol.vx = mol.vy = 0.0
            if not self._add_molecule(mol):
                self.ledger.dissipate(channel, mol.energy)
                self.catalysis.invalidate(mol.id)

    def _fire(self, kind, tick, description=None):
        if kind in self._fired:
            return False
        self._fired.add(kind)
        self._milestones.append(Milestone(kind, tick, description or MILESTONES[kind]))
        return True

    def _register_birth(self, org):
        self.phylogeny.add_node(org.id, org.parent_id, org.species, org.birth_tick,
                                org.generation, org.metabolism_type)

    # ── Main Loop ──

    def tick(self):
        self._tick += 1
        t = self._tick
        self._new_molecules = []
        self._divisions = 0

        self.env.update_cycles(t)
        self.env.decay_chemistry()
        self._update_chemistry(t)
        self._update_protocells(t)
        born = self._update_organisms(t)

        if t % ECOLOGY_INTERVAL == 0:
            self._update_ecology()
        if t % SYMBIOSIS_INTERVAL == 0:
            self._update_symbiosis(t)
        if t % COEVOLUTION_INTERVAL == 0:
            self._update_coevolution(t)
        if t % POPGEN_INTERVAL == 0:
            self._update_population_genetics(t)
        self._check_milestones(t, born)
        if t % self.cfg.metrics_interval == 0:
            self._record_stats()
        self._update_field(t)
        self._update_extinction(t)
        self._organism_emergence(t)
        if t % PHYLOGENY_PRUNE_INTERVAL == 0:
            self.phylogeny.prune(PHYLOGENY_MAX_NODES)
        if t % CACHE_SWEEP_INTERVAL == 0:
            self._sweep_caches()

    def skip_ticks(self, n):
        for _ in range(n):
            self.tick()

    # ── Chemistry ──

    def _update_chemistry(self, t):
        c = self.cfg
        rng = self.rng
        env = self.env
        ledger = self.ledger
        mols = self._molecules
        ws = c.world_size

        for mol in mols:
            mol.tick()

        consumed = set()
        products = []
        if mols:
            n = len(mols)
            xs = np.array([m.x for m in mols]) % ws
            ys = np.array([m.y for m in mols]) % ws
            G = env.resolution
            gx = np.minimum((xs * (G / ws)).astype(np.intp), G - 1)
            gy = np.minimum((ys * (G / ws)).astype(np.intp), G - 1)

            flow_x, flow_y = env.flow_grid()
            vxs = (np.array([m.vx for m in mols]) + flow_x[gy, gx] * 0.1) * 0.99
            vys = (np.array([m.vy for m in mols]) + flow_y[gy, gx] * 0.1) * 0.99

            gain = np.zeros(n)
            for src in self.sources:
                gain += src.get_energy_array(xs, ys, t)
            gain *= c.source_energy_coupling
            ledger.inject("energy_sources", float(gain.sum()))

            for mol, x, y, vx, vy, g in zip(mols, xs.tolist(), ys.tolist(), vxs.tolist(),
                                            vys.tolist(), gain.tolist()):
                mol.x, mol.y, mol.vx, mol.vy = x, y, vx, vy
                mol.energy += g

            index = self.molecule_index
            index.clear()
            for mol in mols:
                index.insert(mol)

            temps = (env.temperature[gy, gx] * c.temperature_scale).tolist()
            wet = env.wetness[gy, gx].tolist()
            toxin = env.toxin[gy, gx].tolist()
            zones = env.zone_type[gy, gx].tolist()
            bias = env.catalytic_bias[gy, gx].tolist()
            redox = env.redox[gy, gx].tolist()
            ph = env.ph[gy, gx].tolist()

            # Reactions
            for i, a in enumerate(mols):
                if a.id in consumed:
                    continue
                near = index.query(a.x, a.y, c.reaction_distance)
                if len(near) < 2:
                    continue
                for b in near:
                    if b is a or b.id in consumed:
                        continue
                    pool = [m for m in near if m is not a and m is not b and m.id not in consumed]
                    rule, catalyst = self.reactions.find_reaction(a, b, temps[i], wet[i], pool)
                    if rule is None:
                        continue
                    made = self.reactions.execute_reaction(a, b, rule, rng, bias[i], redox[i])
                    if not made:
                        continue
                    self._book_reaction(a, b, made, rule, catalyst, ZONE_NAMES[zones[i]], t)
                    consumed.add(a.id)
                    consumed.add(b.id)
                    products.extend(made)
                    break

            # Decay, hydrolysis and toxin drain
            decay_loss = 0.0
            toxin_loss = 0.0
            for i, mol in enumerate(mols):
                if mol.id in consumed:
                    continue
                if (len(mol.atoms) > 2 and mol.bonds
                        and rng.next() < 1.0 - 0.5 ** (1.0 / mol.half_life)):
                    mol.break_bond(rng.int(0, len(mol.bonds)))
                    self.catalysis.invalidate(mol.id)
                w = wet[i]
                if (w > 0.7 and mol.bonds and len(mol.atoms) >= 4 and mol.chain_length() >= 4
                        and rng.next() < hydrolysis_chance(c.polymer_hydrolysis_rate, w, ph[i])):
                    mol.break_bond(rng.int(0, len(mol.bonds)))
                    self.catalysis.invalidate(mol.id)
                if mol.energy > 0:
                    loss = mol.energy * c.molecule_decay_rate
                    tox = toxin[i]
                    if tox > 0.5:
                        drain = min(mol.energy - loss, tox * 0.001)
                        mol.energy -= drain
                        toxin_loss += drain
                    mol.energy -= loss
                    decay_loss += loss
            ledger.dissipate("molecular_decay", decay_loss)
            ledger.dissipate("toxin", toxin_loss)

        if consumed:
            self._molecules = [m for m in mols if m.id not in consumed]
        for mol in products:
            if self._add_molecule(mol):
                self._new_molecules.append(mol)
            else:
                ledger.dissipate("molecule_cap", mol.energy)

        # ── Environmental events ──
        if rng.next() < c.lightning_probability:
            self._lightning_strike(t)
        if rng.next() < c.electrical_storm_probability:
            self._electrical_storm()
        if rng.next() < c.uv_burst_probability:
            self._uv_burst()
        if rng.next() < c.heat_spike_probability:
            self._heat_spike()
        if t % MINERAL_INTERVAL == 0:
            self._emit_minerals()

    def _book_reaction(self, a, b, products, rule, catalyst, zone, t):
        before = a.energy + b.energy
        after = sum(p.energy for p in products)
        self.ledger.record_delta("reactions", after - before)

        self.molecule_index.remove(a)
        self.molecule_index.remove(b)
        self.catalysis.forget((a.id, b.id))

        formation = Formation((a.formula, b.formula), rule.name, zone,
                              catalyst.formula if catalyst is not None else None, t)
        for p in products:
            assert p.energy >= 0, "negative energy after reaction"
            p.energy = max(0.0, p.energy)
            p.formation = formation
            p.role = p.infer_role()
        if catalyst is not None:
            self.catalysis.assign_motifs_as_catalytic_sites(catalyst)
        self.field.add_source(a.x, a.y, "organic", 0.05)
        self.total_reactions += 1

    def _lightning_strike(self, t):
        """A bolt is a lightning source that lives for one tick."""
        c = self.cfg
        rng = self.rng
        bolt = EnergySource.lightning(rng.range(0.0, c.world_size), rng.range(0.0, c.world_size),
                                      c.lightning_energy)
        struck = 0.0
        for mol in self.molecule_index.query(bolt.x, bolt.y, bolt.radius):
            e = bolt.get_energy_at(mol.x, mol.y, t) * c.source_energy_coupling
            mol.energy += e
            struck += e
        self.ledger.inject("lightning", struck)

        for _ in range(5):
            elements = [rng.pick((C, N, O, H))]
            elements += [rng.pick((C, H, N)) for _ in range(rng.int(1, 4))]
            mol = Molecule.chain(elements, self._wrap(bolt.x + rng.gaussian(0.0, 5.0)),
                                 self._wrap(bolt.y + rng.gaussian(0.0, 5.0)),
                                 c.lightning_energy * 0.1)
            mol.role = mol.infer_role()
            self._spawn_molecule(mol, "lightning")
        # Fixed nitrogen and oxygen
        for element in bolt.emit_minerals(rng):
            mol = Molecule.single(element, self._wrap(bolt.x + rng.gaussian(0.0, 5.0)),
                                  self._wrap(bolt.y + rng.gaussian(0.0, 5.0)))
            self._spawn_molecule(mol, "lightning")
        self.field.add_source(bolt.x, bolt.y, "organic", 0.5)

    def _electrical_storm(self):
        c = self.cfg
        rng = self.rng
        x = rng.range(0.0, c.world_size)
        y = rng.range(0.0, c.world_size)
        for _ in range(3):
            mol = Molecule.single(rng.pick((N, O, S)), self._wrap(x + rng.gaussian(0.0, 10.0)),
                                  self._wrap(y + rng.gaussian(0.0, 10.0)), 50.0)
            self._spawn_molecule(mol, "storm")
        self.env.modify_local_chemistry(x, y, 0.0, c.redox_gradient_strength * 0.6)

    def _uv_burst(self):
        env = self.env
        for mol in self._molecules:
            gx, gy = env.to_grid(mol.x, mol.y)
            if (env.uv[gy, gx] > 0.5 and mol.bonds and mol.chain_length() >= 3
                    and self.rng.next() < 0.3):
                mol.break_bond(self.rng.int(0, len(mol.bonds)))
                self.catalysis.invalidate(mol.id)

    def _heat_spike(self):
        env = self.env
        lost = 0.0
        for mol in self._molecules:
            gx, gy = env.to_grid(mol.x, mol.y)
            if env.temperature[gy, gx] > 0.7 and self.rng.next() < 0.2:
                half = mol.energy * 0.5
                mol.energy -= half
                lost += half
        self.ledger.dissipate("heat_spike", lost)

    def _emit_minerals(self):
        rng = self.rng
        for src in self.sources:
            for element in src.emit_minerals(rng):
                x = self._wrap(src.x + rng.gaussian(0.0, 3.0))
                y = self._wrap(src.y + rng.gaussian(0.0, 3.0))
                self.field.add_source(x, y, "mineral", 0.1)
                self._spawn_molecule(Molecule.single(element, x, y), "minerals")

    # ── Protocells ──

    def _update_protocells(self, t):
        c = self.cfg
        if t % FORMATION_INTERVAL == 0:
            self._form_protocells(t)
        if not self._protocells:
            return

        rng = self.rng
        env = self.env
        ledger = self.ledger
        index = self.molecule_index
        flow_x, flow_y = env.flow_grid()

        absorbed = set()
        survivors = []
        daughters = []
        for cell in self._protocells:
            for mol in index.query(cell.x, cell.y, cell.size + 2.0):
                if cell.try_absorb(mol, rng):
                    index.remove(mol)
                    absorbed.add(mol.id)

            gx, gy = env.to_grid(cell.x, cell.y)
            cell.vx = float(flow_x[gy, gx]) * 0.1
            cell.vy = float(flow_y[gy, gx]) * 0.1
            room = len(self._protocells) + len(daughters) < c.max_protocells
            daughter, report = cell.tick(
                rng, float(env.temperature[gy, gx]), c.protocell_division_interior,
                c.protocell_division_replicators, c.max_replicators_per_cell, allow_division=room)
            ledger.inject("protocell_metabolism", report.metabolism)
            ledger.dissipate("membrane_upkeep", report.upkeep)
            ledger.dissipate("replication", report.replication)
            cell.x = self._wrap(cell.x)
            cell.y = self._wrap(cell.y)
            self.selection.track(cell)

            if daughter is not None:
                daughter.x = self._wrap(daughter.x)
                daughter.y = self._wrap(daughter.y)
                daughters.append(daughter)
                self.selection.track(daughter)
                self.selection.record_division(cell.id)
                self._divisions += 1

            if cell.is_alive:
                survivors.append(cell)
            else:
                self._lyse_protocell(cell)

        if absorbed:
            self._molecules = [m for m in self._molecules if m.id not in absorbed]
        self._protocells = survivors + daughters

        if t % LEAKAGE_INTERVAL == 0:
            self._membrane_leakage()
        if t % ATTACK_INTERVAL == 0:
            self._hydrolysis_attack()
            self._parasitic_siphon()
        if t % SELECTION_PRUNE_INTERVAL == 0:
            self.selection.prune({p.id for p in self._protocells})

    def _form_protocells(self, t):
        """Dense clusters of fatty molecules close into membranes."""
        c = self.cfg
        rng = self.rng
        index = self.molecule_index
        needed = c.membrane_formation_threshold * 0.5
        taken = set()

        for mol in self._molecules:
            if len(self._protocells) >= c.max_protocells:
                break
            if mol.id in taken or len(mol.atoms) < 6 or not mol.has_long_carbon_chain():
                continue
            near = [m for m in index.query(mol.x, mol.y, 3.0) if m.id not in taken]
            lipids = [m for m in near if len(m.atoms) >= 4 and m.has_long_carbon_chain()]
            if len(lipids) < needed:
                continue

            cell = Protocell(mol.x, mol.y, len(lipids), energy=sum(m.energy for m in lipids))
            for m in lipids:
                taken.add(m.id)
                index.remove(m)
            self.catalysis.forget(m.id for m in lipids)

            for m in near:
                if len(cell.interior) >= 10:
                    break
                if m.id not in taken and cell.try_absorb(m, rng):
                    taken.add(m.id)
                    index.remove(m)

            if t > c.replicator_emergence_tick and rng.next() < 0.1:
                polymer = InformationPolymer.create_random(rng.int(5, 15), rng)
                cell.replicators.append(Replicator(polymer))
            self._protocells.append(cell)
            self.selection.track(cell)

        if taken:
            self._molecules = [m for m in self._molecules if m.id not in taken]

    def _lyse_protocell(self, cell):
        self._spill(cell, cell.lyse(), "protocell_death")
        self.ledger.dissipate("protocell_death", cell.energy)
        self.resource_cycle.add_dead_matter(max(0.0, cell.energy))
        cell.energy = 0.0

    def _nearest_protocell(self, cell, accept=None):
        best = None
        best_d2 = NEIGHBOUR_RANGE * NEIGHBOUR_RANGE
        for other in self._protocells:
            if other is cell or not other.is_alive:
                continue
            if accept is not None and not accept(other):
                continue
            d2 = (other.x - cell.x) ** 2 + (other.y - cell.y) ** 2
            if d2 <= best_d2:
                if best is None or d2 < (best.x - cell.x) ** 2 + (best.y - cell.y) ** 2:
                    best = other
        return best

    def _membrane_leakage(self):
        rng = self.rng
        for cell in self._protocells:
            if cell.osmotic_pressure <= 0.5:
                continue
            leaky = [m for m in cell.interior if cell.membrane.permeability_of(m.formula) >= 0.5]
            if not leaky or rng.next() >= 0.2:
                continue
            target = self._nearest_protocell(
                cell, lambda o: len(o.interior) < o.membrane.capacity)
            if target is None:
                continue
            mol = rng.pick(leaky)
            cell.interior.remove(mol)
            target.interior.append(mol)

    def _hydrolysis_attack(self):
        """Cells carrying carboxyl catalysts digest their neighbours' energy."""
        for cell in self._protocells:
            motifs = sum(1 for m in cell.interior
                         if any(mt.name == "COO_motif" for mt in self.catalysis.detect_motifs(m)))
            if not motifs:
                continue
            victim = self._nearest_protocell(cell)
            if victim is None or victim.energy <= 0:
                continue
            if self.rng.next() < DEFAULT_PERMEABILITY:
                drain = min(victim.energy, 0.05 * motifs)
                victim.energy -= drain
                cell.energy += drain

    def _parasitic_siphon(self):
        for cell in self._protocells:
            if not cell.replicators or len(cell.metabolism) > 0:
                continue
            victim = self._nearest_protocell(cell, lambda o: len(o.metabolism) > 0)
            if victim is None or victim.energy <= 0:
                continue
            if self.rng.next() < 0.3:
                take = victim.energy * 0.02
                victim.energy -= take
                cell.energy += take

    # ── Organisms ──

    def _update_organisms(self, t):
        c = self.cfg
        mgr = self.manager
        self.communication.begin_tick(t)
        if not mgr.organisms:
            return []
        ledger = self.ledger
        env = self.env
        daylight = 0.5 + 0.5 * math.sin(t / c.day_night_period * 2.0 * math.pi)

        mgr.rebuild_index()
        for org in list(mgr.organisms):
            if not org.alive:
                continue
            plasticity.apply(org, env.zone_at(org.x, org.y))
            nearby = mgr.get_nearby(org.x, org.y, c.sensor_range)
            heard, signal = self._listen(org)
            org.sense(self._sensor_context(org, nearby, t, signal))
            org.think()
            if heard is not None:
                self.communication.record_response(heard, org.actuator_outputs)
            ledger.dissipate("movement", org.act(c.world_size, c.movement_energy_cost))

            zone = env.zone_at(org.x, org.y)
            gained = org.metabolize(zone.energy_density, zone.uv_intensity * daylight)
            if gained >= 0:
                ledger.inject(org.metabolism_type, gained)
            else:
                ledger.dissipate("capacity_overflow", -gained)

            self._secrete(org)
            self._horizontal_transfer(org, nearby)
            pressure = self.ecosystem.niche_pressure(org)
            if pressure > 1.0:
                loss = (pressure - 1.0) * 0.005
                org.energy -= loss
                ledger.dissipate("niche_pressure", loss)
            self._predation(org, nearby)

        born, died = mgr.tick(t)
        for org in mgr.organisms:
            plasticity.reset(org)
        for child in born:
            self._register_birth(child)
        self._bury(died, t)

        if t % SPECIATION_INTERVAL == 0 and mgr.organisms:
            self.speciation.assign_species(mgr.organisms, self.rng)
        return born

    def _bury(self, died, t):
        for org in died:
            self.phylogeny.mark_death(org.id, t)
            self.ledger.dissipate("death", org.energy)
            self.resource_cycle.add_dead_matter(max(0.0, org.energy))

    def _listen(self, org):
        reach = max((s.range for s in org.phenotype.sensors if s.type == "signal"), default=0.0)
        if reach <= 0:
            return None, None
        return self.communication.hear(org, reach)

    def _sensor_context(self, org, nearby, t, signal=None):
        gradient = self.field.get_gradient(org.x, org.y, "organic")

        light = 0.0
        direction = (0.0, 0.0)
        for src in self.sources:
            if src.kind != UV:
                continue
            e = src.get_energy_at(org.x, org.y, t)
            if e > light:
                light = e
                direction = normalize(src.x - org.x, src.y - org.y)

        nearest = None
        for other in nearby:
            if other is org or not other.alive:
                continue
            dx = other.x - org.x
            dy = other.y - org.y
            d = math.hypot(dx, dy)
            if nearest is None or d < nearest[0]:
                ux, uy = normalize(dx, dy)
                nearest = (d, ux, uy)
        touch = nearest is not None and nearest[0] < org.phenotype.body_radius * 2.0
        return SensorContext(gradient, light, direction, nearest, touch, signal)

    def _secrete(self, org):
        out = org.actuator_outputs
        p = org.phenotype
        if out[SECRETION] > 0.5 and p.toxicity > 0 and p.has_actuator("secretion"):
            self.env.add_toxin(org.x, org.y, self.cfg.toxin_secretion_rate * p.toxicity)
            cost = sum(a.energy_cost for a in p.actuators if a.type == "secretion")
            org.energy -= cost
            self.ledger.dissipate("secretion", cost)
        if self.communication.emit(org, self._tick) is not None:
            self.field.add_source(org.x, org.y, "signal", 0.01 * p.signal_type)

    def _horizontal_transfer(self, org, nearby):
        if self.rng.next() >= self.cfg.horizontal_transfer_rate:
            return
        for other in nearby:
            if other is org or not other.alive:
                continue
            reach = org.phenotype.body_radius + other.phenotype.body_radius + 1.0
            if (other.x - org.x) ** 2 + (other.y - org.y) ** 2 < reach * reach:
                org.genome = org.genome.horizontal_transfer(other.genome, self.rng)
                return

    def _predation(self, org, nearby):
        p = org.phenotype
        if org.actuator_outputs[INGESTION] <= 0.5 or not p.has_actuator("ingestion"):
            return
        for prey in nearby:
            if prey is org or not prey.alive:
                continue
            reach = p.body_radius + prey.phenotype.body_radius
            if (prey.x - org.x) ** 2 + (prey.y - org.y) ** 2 > reach * reach:
                continue
            if p.metabolism_type != HETEROTROPHY and p.mass <= prey.phenotype.mass * 1.5:
                continue
            gain = max(0.0, prey.energy) * 0.7
            prey.energy -= gain
            org.energy += gain
            prey.take_damage(1.0)
            if not prey.alive:
                org.kill_count += 1
                self.total_kills += 1
                self.food_web.record_predation(org.species, prey.species)
            return

    # ── Ecology ──

    def _alive(self):
        return [o for o in self.manager.organisms if o.alive]

    def _update_ecology(self):
        self.ecosystem.update(self._alive(), self.speciation)
        self.resource_cycle.decompose(0.01)

    def _update_symbiosis(self, t):
        orgs = self.manager.organisms
        self.symbiosis.update(orgs, self.manager.get_nearby)
        gained, lost = self.symbiosis.apply_effects({o.id: o for o in orgs})
        self.ledger.inject("symbiosis", gained)
        self.ledger.dissipate("parasitism", lost)
        if any(b.updates >= MIN_UPDATES for b in self.symbiosis.bonds):
            self._fire("SYMBIOSIS", t)

    def _update_coevolution(self, t):
        orgs = self.manager.organisms
        self.arms_race = self.coevolution.update(orgs, self.food_web, t)
        self.ledger.inject("coevolution", self.coevolution.apply_pressure(orgs))

    def _update_population_genetics(self, t):
        alive = self._alive()
        self.popgen.analyze(alive, t)
        self.popgen.apply_drift(alive, self.rng)
        if self.popgen.check_bottleneck():
            self._fire("GENETIC_BOTTLENECK", t)

    def _update_field(self, t):
        self.field.tick(self.diffusion)
        if t % ADVECTION_INTERVAL == 0:
            # World units per tick -> cells per advection step
            flow_x, flow_y = self.env.flow_grid()
            scale = ADVECTION_INTERVAL / self.field.cell_size
            self.field.advect(flow_x * scale, flow_y * scale)

    def _update_extinction(self, t):
        c = self.cfg
        mgr = self.manager
        kind = self.extinction.check_for_event(
            self.rng, c.volcanic_eruption_rate, c.asteroid_impact_rate,
            self.ecosystem.oxygen_level, c.o2_toxicity_threshold)
        if kind is not None:
            self.extinction.start_event(kind, t, mgr.population, self.speciation.species_count)
            self._fire("MASS_EXTINCTION", t, f"Mass extinction began: {kind.replace('_', ' ')}")
        if self.extinction.apply_effects(mgr.organisms, t, self.rng, self.speciation.species_count):
            self._bury(mgr.remove_dead(), t)

    # ── Emergence ──

    def _organism_emergence(self, t):
        c = self.cfg
        mgr = self.manager
        rng = self.rng

        if self._protocells and mgr.population < c.max_population:
            keep = []
            for cell in self._protocells:
                if (cell.replication_potential >= EMERGENCE_FIDELITY and cell.metabolism_rate > 0
                        and cell.complexity_score >= 3 and cell.age > c.organism_emergence_age
                        and mgr.population < c.max_population
                        and rng.next() < c.organism_emergence_probability
                        and self._emerge(cell, t)):
                    continue
                keep.append(cell)
            self._protocells = keep

        if (t > c.spontaneous_generation_tick and mgr.population == 0
                and t % c.spontaneous_generation_interval == 0 and self.sources):
            src = rng.pick(self.sources)
            x = self._wrap(src.x + rng.gaussian(0.0, 10.0))
            y = self._wrap(src.y + rng.gaussian(0.0, 10.0))
            kind = PHOTOSYNTHESIS if self.env.zone_at(x, y).uv_intensity > 0.5 else CHEMOSYNTHESIS
            org = mgr.spawn_initial_organism(x, y, kind, t)
            if org is not None:
                self.ledger.inject("spontaneous_generation", org.energy)
                self._register_birth(org)

    def _emerge(self, cell, t):
        """Promote a protocell to an organism. Returns False when refused."""
        zone = self.env.zone_at(cell.x, cell.y)
        if zone.uv_intensity > 0.5:
            kind = PHOTOSYNTHESIS
        elif zone.type == ZONE_NAMES[HYDROTHERMAL_VENT]:
            kind = CHEMOSYNTHESIS
        else:
            kind = FERMENTATION
        org = self.manager.spawn_initial_organism(cell.x, cell.y, kind, t, energy=cell.energy * 0.5)
        if org is None:
            return False
        self.ledger.dissipate("emergence", cell.energy - org.energy)
        cell.energy = 0.0
        self._spill(cell, cell.lyse(), "emergence")
        self._register_birth(org)
        return True

    # ── Milestones ──

    def _check_milestones(self, t, born):
        fired = self._fired
        if self._new_molecules and not fired.issuperset(CHEMICAL_MILESTONES):
            for mol in self._new_molecules:
                if "AMINO_ACID" not in fired and mol.has_cn_bond() and len(mol.atoms) >= 4:
                    self._fire("AMINO_ACID", t)
                if ("FATTY_ACID" not in fired and len(mol.atoms) >= 6
                        and mol.has_long_carbon_chain()):
                    self._fire("FATTY_ACID", t)
                if "NUCLEOTIDE" not in fired and mol.has_phosphorus_ring():
                    self._fire("NUCLEOTIDE", t)
                if "POLYMER" not in fired and mol.chain_length() >= 5:
                    self._fire("POLYMER", t)

        cells = self._protocells
        if cells:
            if "PROTOCELL" not in fired and any(len(p.interior) >= 5 for p in cells):
                self._fire("PROTOCELL", t)
            if "REPLICATOR" not in fired and any(
                    r.copy_count > 0 for p in cells for r in p.replicators):
                self._fire("REPLICATOR", t)
            if "METABOLISM" not in fired and any(p.metabolism_rate > 0 for p in cells):
                self._fire("METABOLISM", t)
        if self._divisions:
            self._fire("PROTOCELL_DIVISION", t)

        mgr = self.manager
        if mgr.population > 0:
            self._fire("FIRST_ORGANISM", t)
            if "PHOTOSYNTHESIS" not in fired and any(
                    o.metabolism_type == PHOTOSYNTHESIS for o in mgr.organisms):
                self._fire("PHOTOSYNTHESIS", t)
        if "NEURAL_HIDDEN" not in fired and any(o.genome.neural.hidden_count > 0 for o in born):
            self._fire("NEURAL_HIDDEN", t)
        if self.total_kills > 0:
            self._fire("PREDATION", t)
        if self.communication.total_heard > 0:
            self._fire("COMMUNICATION", t)
        species = self.speciation.species_count
        if species >= 2:
            self._fire("SPECIATION", t)
        if species >= 5:
            self._fire("ECOSYSTEM", t)
        if self.ecosystem.trophic_level_count >= 3:
            self._fire("FOOD_WEB", t)

    def _sweep_caches(self):
        live = {m.id for m in self._molecules}
        for cell in self._protocells:
            live.update(m.id for m in cell.interior)
        self.catalysis.retain(live)

    # ── Queries ──

    @property
    def tick_count(self):
        return self._tick

    @property
    def molecules(self):
        return tuple(self._molecules)

    @property
    def protocells(self):
        return tuple(self._protocells)

    @property
    def organisms(self):
        return tuple(self.manager.organisms)

    @property
    def milestones(self):
        return tuple(self._milestones)

    @property
    def signals(self):
        return tuple(self.communication.signals)

    @property
    def energy_sources(self):
        return tuple(self.sources)

    def zone_at(self, x, y):
        return self.env.zone_at(x, y)

    def concentration(self, tag, x, y):
        return self.field.get_concentration(x, y, tag)

    def gradient(self, tag, x, y):
        return self.field.get_gradient(x, y, tag)

    def nearby_molecules(self, x, y, radius):
        return self.molecule_index.query(x, y, radius)

    def nearby_organisms(self, x, y, radius):
        return self.manager.get_nearby(x, y, radius)

    def zone_map(self):
        return self.env.zone_type.copy()

    def toxin_map(self):
        return self.env.toxin.copy()

    def wetness_map(self):
        return self.env.wetness.copy()

    def field_layer(self, tag):
        return self.field.layer(tag)

    def total_energy(self):
        """Energy held by free molecules, protocells (with contents) and organisms."""
        return (sum(m.energy for m in self._molecules)
                + sum(p.energy + p.interior_energy() for p in self._protocells)
                + sum(o.energy for o in self.manager.organisms))

    def get_stats(self):
        return {
            "tick": self._tick,
            "molecules": len(self._molecules),
            "protocells": len(self._protocells),
            "population": self.manager.population,
            "species": self.speciation.species_count,
            "total_energy": self.total_energy(),
            "oxygen_level": self.ecosystem.oxygen_level,
            "milestones": [m._asdict() for m in self._milestones],
            "metrics": self.stats_history[-1] if self.stats_history else {},
        }

    # ── Stats ──

    def _record_stats(self):
        mols = self._molecules
        orgs = self.manager.organisms
        s = {
            "t": self._tick,
            "molecules": len(mols),
            "avg_mol_size": round(float(np.mean([len(m.atoms) for m in mols])), 3) if mols else 0.0,
            "avg_chain": round(float(np.mean([m.chain_length() for m in mols])), 3) if mols else 0.0,
            "energy_flux": round(sum(src.power for src in self.sources), 3),
            "reactions": self.total_reactions,
            "protocells": len(self._protocells),
            "pop": len(orgs),
            "species": self.speciation.species_count,
            "total_energy": round(self.total_energy(), 3),
            "oxygen": round(self.ecosystem.oxygen_level, 4),
            "diversity": round(self.ecosystem.diversity_index, 4),
            "trophic_levels": self.ecosystem.trophic_level_count,
            "symbiotic_bonds": len(self.symbiosis),
            "arms_race": round(self.arms_race.escalation_rate, 4),
            "heterozygosity": round(self.popgen.latest_heterozygosity, 4),
            "born": self.manager.total_born,
            "died": self.manager.total_died,
            "total_kills": self.total_kills,
            "signals": len(self.communication),
            "signals_heard": self.communication.total_heard,
            "organic_matter": round(self.resource_cycle.organic_matter, 3),
            "extinction": self.extinction.active.type if self.extinction.active else None,
        }
        if orgs:
            s["avg_energy"] = round(float(np.mean([o.energy for o in orgs])), 3)
            s["max_gen"] = int(max(o.generation for o in orgs))
            s["avg_genes"] = round(float(np.mean([len(o.genome.genes) for o in orgs])), 2)
            s["avg_hidden"] = round(float(np.mean([o.genome.neural.hidden_count for o in orgs])), 2)
        else:
            s.update({"avg_energy": 0.0, "max_gen": 0, "avg_genes": 0.0, "avg_hidden": 0.0})
        self.stats_history.append(s)
        return s

    def snapshot(self):
        """Plain-data copy of the current state, safe to keep across ticks."""
        return {
            "tick": self._tick,
            "stats": self.get_stats(),
            "molecules": [{"id": m.id, "formula": m.formula, "x": m.x, "y": m.y,
                           "energy": m.energy, "role": m.role} for m in self._molecules],
            "protocells": [{"id": p.id, "x": p.x, "y": p.y, "energy": p.energy,
                            "interior": len(p.interior), "replicators": len(p.replicators),
                            "osmotic_pressure": p.osmotic_pressure,
                            "replication_potential": p.replication_potential,
                            "state": p.state} for p in self._protocells],
            "organisms": [{"id": o.id, "x": o.x, "y": o.y, "energy": o.energy,
                           "species": o.species, "generation": o.generation,
                           "metabolism": o.metabolism_type, "alive": o.alive}
                          for o in self.manager.organisms],
            "signals": [s._asdict() for s in self.communication.signals],
            "milestones": [m._asdict() for m in self._milestones],
            "communication": self.communication.summary(),
        }
