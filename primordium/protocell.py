"""
Primordium — Protocells
=======================
Membrane-bounded compartments. A protocell owns the molecules it absorbed,
any replicators riding inside it and a small proto-metabolism. Each tick it
pays membrane upkeep, runs its pathways on the distinct interior formulas,
lets its replicators copy, and may divide once it is crowded enough.

States: forming -> active -> (dividing | lysing). Lysing is terminal; the
simulation removes the cell and hands its contents back to the world.
"""

import math
from collections import namedtuple

from .ids import new_id
from .metabolism import MAX_PATHWAYS, ProtoMetabolism, random_pathway


FORMING = "forming"
ACTIVE = "active"
DIVIDING = "dividing"
LYSING = "lysing"

DEFAULT_PERMEABILITY = 0.1

# Optimal membrane temperature (zone units)
OPTIMAL_TEMPERATURE = 0.5

ProtocellTickReport = namedtuple("ProtocellTickReport", ["metabolism", "upkeep", "replication"])


class Membrane:
    def __init__(self, lipid_count):
        self.lipid_count = int(lipid_count)
        self.permeability = {"H2": 0.8, "CO2": 0.7}

    @property
    def stability(self):
        return 0.5 + self.lipid_count * 0.02

    @property
    def capacity(self):
        return self.lipid_count * 2

    def permeability_of(self, formula):
        return self.permeability.get(formula, DEFAULT_PERMEABILITY)


class Protocell:
    def __init__(self, x, y, lipid_count=20, energy=None):
        self.id = new_id()
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.membrane = Membrane(lipid_count)
        self.interior = []
        self.replicators = []
        self.metabolism = ProtoMetabolism()
        self.energy = lipid_count * 0.1 if energy is None else energy
        self.integrity = 1.0
        self.age = 0
        self.parent_id = None
        self.division_count = 0
        self.state = FORMING

    def __repr__(self):
        return (f"Protocell(id={self.id}, lipids={self.membrane.lipid_count}, "
                f"interior={len(self.interior)}, energy={self.energy:.3f}, state={self.state})")

    # ── Derived ──

    @property
    def size(self):
        return math.sqrt(len(self.interior) + self.membrane.lipid_count) * 0.5

    @property
    def osmotic_pressure(self):
        capacity = self.membrane.capacity
        return len(self.interior) / capacity if capacity > 0 else 0.0

    def interior_formulas(self):
        return {m.formula for m in self.interior}

    @property
    def complexity_score(self):
        return len(self.interior_formulas())

    @property
    def metabolism_rate(self):
        return self.metabolism.metabolism_rate

    @property
    def replication_potential(self):
        return self.replicators[0].polymer.fidelity if self.replicators else 0.0

    @property
    def is_alive(self):
        return self.state != LYSING

    def interior_energy(self):
        return sum(m.energy for m in self.interior)

    # ── Lifecycle ──

    def update_integrity(self, temperature):
        temp_factor = 1.0 - abs(temperature - OPTIMAL_TEMPERATURE) * 0.5
        self.integrity = min(1.0, self.membrane.stability * temp_factor)
        pressure = self.osmotic_pressure
        if pressure > 1.5:
            self.integrity -= 0.1 * (pressure - 1.5)

    def tick(self, rng, temperature, division_interior=30, division_replicators=3,
             max_replicators=16, allow_division=True):
        """Advance one tick. Returns (daughter or None, ProtocellTickReport)."""
        self.age += 1
        if self.state in (FORMING, DIVIDING):
            self.state = ACTIVE
        self.update_integrity(temperature)

        self.x += self.vx
        self.y += self.vy

        formulas = self.interior_formulas()
        gained = self.metabolism.tick(formulas)
        self.energy += gained

        upkeep = self.membrane.lipid_count * 0.0001
        self.energy -= upkeep

        replication = 0.0
        for rep in list(self.replicators):
            child, spent = rep.tick(self.energy, rng, temperature)
            self.energy -= spent
            replication += spent
            if child is not None and len(self.replicators) < max_replicators:
                self.replicators.append(child)

        if (len(formulas) >= 2 and len(self.metabolism) < MAX_PATHWAYS
                and rng.next() < 0.02):
            self.metabolism.add_pathway(random_pathway(formulas, rng))

        report = ProtocellTickReport(gained, upkeep, replication)

        if self.energy <= 0 or self.integrity <= 0:
            self.state = LYSING
            return None, report

        daughter = None
        crowded = len(self.interior) >= division_interior
        if allow_division and (crowded or len(self.replicators) > division_replicators):
            if rng.next() < 0.01 * max(1.0, len(self.interior) / division_interior):
                daughter = self.divide(rng)
        return daughter, report

    def divide(self, rng):
        """Split into two cells. Energy, interior and replicators are partitioned."""
        lipids = self.membrane.lipid_count
        daughter = Protocell(self.x + rng.range(-2.0, 2.0), self.y + rng.range(-2.0, 2.0),
                             lipids // 2, energy=0.0)
        daughter.parent_id = self.id

        shuffled = rng.shuffle(self.interior)
        half = len(shuffled) // 2
        daughter.interior = shuffled[:half]
        self.interior = shuffled[half:]

        if len(self.replicators) > 1:
            shuffled = rng.shuffle(self.replicators)
            half = len(shuffled) // 2
            daughter.replicators = shuffled[:half]
            self.replicators = shuffled[half:]
        elif len(self.replicators) == 1 and rng.bool():
            daughter.replicators = self.replicators
            self.replicators = []

        daughter.energy = self.energy * 0.4
        self.energy -= daughter.energy
        self.membrane.lipid_count = lipids - lipids // 2
        daughter.metabolism = self.metabolism.copy()

        self.division_count += 1
        self.state = DIVIDING
        daughter.state = DIVIDING
        return daughter

    def try_absorb(self, mol, rng):
        """Pull a free molecule through the membrane. Returns True when it enters."""
        if len(self.interior) >= self.membrane.capacity:
            return False
        perm = self.membrane.permeability_of(mol.formula)
        if rng.next() >= perm / max(1.0, len(mol.atoms) / 2.0):
            return False
        self.interior.append(mol)
        share = mol.energy * 0.1
        mol.energy -= share
        self.energy += share
        return True

    def lyse(self):
        """Mark dead and hand back the interior molecules."""
        self.state = LYSING
        released, self.interior = self.interior, []
        return released


# ─────────────────────────────────────────────────────────────
# Selection bookkeeping
# ─────────────────────────────────────────────────────────────

class SelectionMetrics:
    __slots__ = ("protocell_id", "survival_time", "replication_count",
                 "energy_efficiency", "complexity")

    def __init__(self, protocell_id):
        self.protocell_id = protocell_id
        self.survival_time = 0
        self.replication_count = 0
        self.energy_efficiency = 0.0
        self.complexity = 0

    @property
    def fitness(self):
        return self.survival_time * 0.3 + self.replication_count * 10 + self.energy_efficiency * 5


class ProtoSelection:
    def __init__(self):
        self.metrics = {}

    def track(self, cell):
        m = self.metrics.get(cell.id)
        if m is None:
            m = self.metrics[cell.id] = SelectionMetrics(cell.id)
        m.survival_time = cell.age
        m.energy_efficiency = cell.metabolism_rate
        m.complexity = cell.complexity_score

    def record_division(self, parent_id):
        m = self.metrics.get(parent_id)
        if m is not None:
            m.replication_count += 1

    def get_most_fit(self, count=10):
        # Ties keep tracking order
        return sorted(self.metrics.values(), key=lambda m: -m.fitness)[:count]

    def prune(self, active_ids):
        for pid in [p for p in self.metrics if p not in active_ids]:
            del self.metrics[pid]
