"""
Primordium — Organism population
================================
Owns the live organisms and their spatial index. Births and deaths are
applied in bulk once per tick; the population cap is enforced both on
admission and on division output, and refusals are silent.
"""

from . import neat
from .genome import Genome
from .organism import Organism
from .spatial_hash import SpatialHash


RECENT_DEAD_LIMIT = 100


class OrganismManager:
    def __init__(self, cfg, rng, innovations, ledger=None):
        self.cfg = cfg
        self.rng = rng
        self.innovations = innovations
        self.ledger = ledger
        self.params = neat.MutationParams.from_config(cfg)
        self.organisms = []
        self.recently_dead = []
        self.index = SpatialHash(cfg.spatial_hash_cell_size)
        self.total_born = 0
        self.total_died = 0

    def __len__(self):
        return len(self.organisms)

    @property
    def population(self):
        return len(self.organisms)

    def add(self, org):
        if len(self.organisms) >= self.cfg.max_population:
            return False
        self.organisms.append(org)
        self.index.insert(org)
        self.total_born += 1
        return True

    def rebuild_index(self):
        self.index.clear()
        for org in self.organisms:
            self.index.insert(org)

    def _spend(self, channel, amount):
        if self.ledger is not None:
            self.ledger.dissipate(channel, amount)

    def tick(self, tick):
        """Age everyone, let the fit divide, then drop the dead. Returns (born, died)."""
        c = self.cfg
        self.rebuild_index()

        born = []
        for org in self.organisms:
            if not org.alive:
                continue
            basal = org.phenotype.basal_metabolic_rate
            cost = org.tick_age()
            self._spend("basal_metabolism", basal)
            self._spend("neural_computation", cost - basal)
            if not org.alive:
                continue

            if org.can_divide() and len(self.organisms) + len(born) < c.max_population:
                child = org.divide(self.rng, self.innovations, self.params,
                                   c.offspring_energy_fraction, c.world_size)
                child.birth_tick = tick
                self._spend("division", org.phenotype.division_energy_cost)
                born.append(child)

        died = self.remove_dead()
        for child in born:
            self.add(child)
        self.rebuild_index()
        return born, died

    def remove_dead(self):
        """Drop organisms that died since the last sweep. Returns them."""
        died = [o for o in self.organisms if not o.alive]
        if died:
            self.organisms = [o for o in self.organisms if o.alive]
            self.total_died += len(died)
            self.recently_dead.extend(died)
            del self.recently_dead[:-RECENT_DEAD_LIMIT]
            for org in died:
                self.index.remove(org)
        return died

    def get_nearby(self, x, y, radius):
        return self.index.query(x, y, radius)

    def species_counts(self):
        counts = {}
        for org in self.organisms:
            counts[org.species] = counts.get(org.species, 0) + 1
        return counts

    def spawn_initial_organism(self, x, y, metabolism, tick, energy=None):
        """A founder with a minimal genome, or None when the population is full."""
        if len(self.organisms) >= self.cfg.max_population:
            return None
        genome = Genome.create_initial(self.rng, self.innovations, metabolism)
        org = Organism(genome, x, y, 0, energy)
        org.birth_tick = tick
        self.add(org)
        return org
