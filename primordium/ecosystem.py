"""
Primordium — Ecosystem
======================
Periodic ecology bookkeeping: trophic levels, resource niches and their
crowding pressure, oxygen from photosynthesis, Shannon diversity over species
shares, the predation graph, and the pool of dead organic matter.
"""

from collections import namedtuple

from scipy.stats import entropy


MET_TO_NICHE = {
    "chemosynthesis": "vent_chemotroph",
    "photosynthesis": "surface_phototroph",
    "fermentation": "deep_fermentor",
    "heterotrophy": "tidal_scavenger",
}

TrophicLevel = namedtuple("TrophicLevel", ["level", "species", "population", "energy"])


class ResourceNiche:
    def __init__(self, name, energy_source, temperature_range, capacity):
        self.name = name
        self.energy_source = energy_source
        self.temperature_range = temperature_range
        self.capacity = capacity
        self.current_users = 0

    @property
    def pressure(self):
        return self.current_users / max(1, self.capacity)


def default_niches():
    return [
        ResourceNiche("vent_chemotroph", "geothermal", (0.6, 1.0), 200),
        ResourceNiche("surface_phototroph", "light", (0.3, 0.7), 300),
        ResourceNiche("deep_fermentor", "organic", (0.1, 0.4), 150),
        ResourceNiche("tidal_scavenger", "detritus", (0.2, 0.6), 100),
    ]


class Ecosystem:
    def __init__(self):
        self.trophic_levels = []
        self.total_energy = 0.0
        self.oxygen_level = 0.0
        self.diversity_index = 0.0
        self.extinction_rate = 0
        self.niches = {n.name: n for n in default_niches()}
        self._previous_species = 0

    def update(self, organisms, speciation):
        for niche in self.niches.values():
            niche.current_users = 0

        levels = {1: [], 2: [], 3: []}
        for sp in speciation.species:
            if not sp.members:
                continue
            rep = sp.members[0]
            kind = rep.phenotype.metabolism_type
            if kind in ("photosynthesis", "chemosynthesis"):
                levels[1].append(sp.id)
            elif kind == "heterotrophy" and rep.kill_count > 0:
                levels[3].append(sp.id)
            else:
                levels[2].append(sp.id)
        level_of = {sid: lvl for lvl, ids in levels.items() for sid in ids}

        population = {1: 0, 2: 0, 3: 0}
        energy = {1: 0.0, 2: 0.0, 3: 0.0}
        species_counts = {}
        photosynthesizers = 0
        self.total_energy = 0.0
        for org in organisms:
            self.total_energy += org.energy
            lvl = level_of.get(org.species)
            if lvl is not None:
                population[lvl] += 1
                energy[lvl] += org.energy
            self.niches[MET_TO_NICHE.get(org.phenotype.metabolism_type, "tidal_scavenger")].current_users += 1
            if org.phenotype.metabolism_type == "photosynthesis":
                photosynthesizers += 1
            species_counts[org.species] = species_counts.get(org.species, 0) + 1

        self.trophic_levels = [TrophicLevel(lvl, tuple(ids), population[lvl], energy[lvl])
                               for lvl, ids in levels.items() if ids]
        self.oxygen_level = min(1.0, photosynthesizers * 0.001)
        self.diversity_index = float(entropy(list(species_counts.values()))) if organisms else 0.0

        current = speciation.species_count
        self.extinction_rate = max(0, self._previous_species - current)
        self._previous_species = current

    def niche_pressure(self, org):
        niche = self.niches.get(MET_TO_NICHE.get(org.phenotype.metabolism_type, "tidal_scavenger"))
        return niche.pressure if niche is not None else 1.0

    @property
    def trophic_level_count(self):
        return len(self.trophic_levels)


class FoodWeb:
    def __init__(self):
        # (predator species, prey species) -> predation count
        self.links = {}

    def __len__(self):
        return len(self.links)

    def record_predation(self, predator_species, prey_species):
        key = (predator_species, prey_species)
        self.links[key] = self.links.get(key, 0) + 1

    def connectance(self, species_count):
        if species_count <= 1:
            return 0.0
        return len(self.links) / (species_count * (species_count - 1))


class ResourceCycle:
    def __init__(self, minerals=100.0):
        self.organic_matter = 0.0
        self.dissolved_minerals = minerals

    def add_dead_matter(self, energy):
        self.organic_matter += energy

    def decompose(self, rate):
        decomposed = self.organic_matter * rate
        self.organic_matter -= decomposed
        self.dissolved_minerals += decomposed * 0.8
        return decomposed

    def consume_minerals(self, amount):
        consumed = min(amount, self.dissolved_minerals)
        self.dissolved_minerals -= consumed
        return consumed
