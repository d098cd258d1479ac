"""
Primordium — Genome and Phenotype
=================================
A genome is a variable-length list of typed genes plus one embedded NEAT
genome. `express()` folds the enabled genes into an immutable Phenotype
through a per-type handler table; it never changes the genome. Replication,
crossover and horizontal transfer build new Genome instances.
"""

import math
from collections import namedtuple
from dataclasses import dataclass
from enum import IntEnum

from . import neat


class GeneType(IntEnum):
    BODY_SIZE = 0
    BODY_SHAPE = 1
    BODY_SYMMETRY = 2
    SENSOR_CHEMICAL = 3
    SENSOR_LIGHT = 4
    SENSOR_TOUCH = 5
    SENSOR_PROXIMITY = 6
    SENSOR_INTERNAL = 7
    ACTUATOR_FLAGELLUM = 8
    ACTUATOR_CILIA = 9
    ACTUATOR_INGESTION = 10
    ACTUATOR_SECRETION = 11
    ACTUATOR_ADHESION = 12
    ACTUATOR_DIVISION = 13
    METABOLISM_CHEMOSYNTHESIS = 14
    METABOLISM_PHOTOSYNTHESIS = 15
    METABOLISM_HETEROTROPHY = 16
    METABOLISM_FERMENTATION = 17
    NEURAL_CONNECTION = 18
    NEURAL_NODE = 19
    NEURAL_BIAS = 20
    NEURAL_MODULATION = 21
    DEFENSE_TOXIN = 22
    DEFENSE_SHELL = 23
    DEFENSE_SPEED = 24
    DEFENSE_CAMOUFLAGE = 25
    SIGNAL_EMISSION = 26
    SIGNAL_RECEPTION = 27
    COOPERATION_MARKER = 28


CHEMOSYNTHESIS = "chemosynthesis"
PHOTOSYNTHESIS = "photosynthesis"
HETEROTROPHY = "heterotrophy"
FERMENTATION = "fermentation"

METABOLISM_TYPES = (CHEMOSYNTHESIS, PHOTOSYNTHESIS, HETEROTROPHY, FERMENTATION)

METABOLISM_GENES = {
    CHEMOSYNTHESIS: GeneType.METABOLISM_CHEMOSYNTHESIS,
    PHOTOSYNTHESIS: GeneType.METABOLISM_PHOTOSYNTHESIS,
    HETEROTROPHY: GeneType.METABOLISM_HETEROTROPHY,
    FERMENTATION: GeneType.METABOLISM_FERMENTATION,
}

BODY_SHAPES = ("circular", "elongated", "branched", "amorphous")

# Readings each sensor contributes to the network input vector
SENSOR_WIDTH = {"chemical": 2, "light": 3, "touch": 1, "proximity": 3, "internal": 2, "signal": 3}

ACTUATOR_COUNT = 8
ORIENTATION_INPUTS = 2

MAX_GENES = 50

# Genes below this expression level are treated as silent
REGULATORY_FLOOR = 0.1


Gene = namedtuple("Gene", ["type", "parameters", "regulatory", "enabled"])
Sensor = namedtuple("Sensor", ["type", "range", "sensitivity", "angle"])
Actuator = namedtuple("Actuator", ["type", "strength", "energy_cost"])


def make_gene(gene_type, parameters=(), regulatory=1.0, enabled=True):
    return Gene(GeneType(gene_type), tuple(parameters), regulatory, enabled)


def _param(gene, index, default):
    return gene.parameters[index] if index < len(gene.parameters) else default


@dataclass(frozen=True)
class Phenotype:
    body_size: float
    body_shape: str
    body_radius: float
    mass: float
    max_speed: float
    sensors: tuple
    actuators: tuple
    metabolism_type: str
    metabolic_efficiency: float
    energy_capacity: float
    basal_metabolic_rate: float
    toxicity: float
    shell_thickness: float
    speed_multiplier: float
    camouflage: float
    signal_type: float
    signal_reception: float
    cooperation_marker: float
    division_energy_cost: float
    division_threshold: float
    offspring_size: float
    max_age: float
    neural_inputs: int
    neural_outputs: int

    def has_actuator(self, kind):
        return any(a.type == kind for a in self.actuators)


# ─────────────────────────────────────────────────────────────
# Expression handlers, one per gene type
# ─────────────────────────────────────────────────────────────

class _Traits:
    """Mutable accumulator threaded through the handlers."""

    def __init__(self):
        self.body_size = 1.0
        self.shape = BODY_SHAPES[0]
        self.metabolism = CHEMOSYNTHESIS
        self.sensors = []
        self.actuators = []
        self.toxicity = 0.0
        self.shell = 0.0
        self.speed = 1.0
        self.camouflage = 0.0
        self.signal_type = 0.0
        self.signal_reception = 0.0
        self.cooperation = 0.0


def _body_size(t, g):
    t.body_size = _param(g, 0, 1.0) * g.regulatory


def _body_shape(t, g):
    t.shape = BODY_SHAPES[int(math.floor(_param(g, 0, 0.0) * 4)) % 4]


def _sensor(kind, default_range):
    def handler(t, g):
        t.sensors.append(Sensor(kind, _param(g, 0, default_range) * g.regulatory,
                                _param(g, 1, 0.5) * g.regulatory, _param(g, 2, 0.0)))
    return handler


def _touch(t, g):
    t.sensors.append(Sensor("touch", 1.0, g.regulatory, _param(g, 0, 0.0)))


def _proximity(t, g):
    t.sensors.append(Sensor("proximity", _param(g, 0, 10.0) * g.regulatory, g.regulatory,
                            _param(g, 1, 0.0)))


def _internal(t, g):
    t.sensors.append(Sensor("internal", 0.0, g.regulatory, 0.0))


def _actuator(kind, default_strength, cost):
    def handler(t, g):
        t.actuators.append(Actuator(kind, _param(g, 0, default_strength) * g.regulatory, cost))
    return handler


def _division(t, g):
    t.actuators.append(Actuator("division", g.regulatory, 0.4))


def _metabolism(kind):
    def handler(t, g):
        t.metabolism = kind
    return handler


def _toxin(t, g):
    t.toxicity = _param(g, 0, 0.5) * g.regulatory


def _shell(t, g):
    t.shell = _param(g, 0, 0.3) * g.regulatory


def _speed(t, g):
    t.speed *= 1.0 + _param(g, 0, 0.5) * g.regulatory


def _camouflage(t, g):
    t.camouflage = _param(g, 0, 0.5) * g.regulatory


def _signal_emission(t, g):
    t.signal_type = _param(g, 0, 1.0)


def _signal_reception(t, g):
    t.signal_reception = _param(g, 0, 1.0) * g.regulatory
    t.sensors.append(Sensor("signal", _param(g, 1, 20.0) * g.regulatory, t.signal_reception, 0.0))


def _cooperation(t, g):
    t.cooperation = _param(g, 0, 1.0)


def _structural(t, g):
    # Carried for distance and drift; the network itself lives in the NEAT genome
    pass


_HANDLERS = {
    GeneType.BODY_SIZE: _body_size,
    GeneType.BODY_SHAPE: _body_shape,
    GeneType.BODY_SYMMETRY: _structural,
    GeneType.SENSOR_CHEMICAL: _sensor("chemical", 10.0),
    GeneType.SENSOR_LIGHT: _sensor("light", 15.0),
    GeneType.SENSOR_TOUCH: _touch,
    GeneType.SENSOR_PROXIMITY: _proximity,
    GeneType.SENSOR_INTERNAL: _internal,
    GeneType.ACTUATOR_FLAGELLUM: _actuator("flagellum", 1.0, 0.005),
    GeneType.ACTUATOR_CILIA: _actuator("cilia", 0.5, 0.003),
    GeneType.ACTUATOR_INGESTION: _actuator("ingestion", 1.0, 0.002),
    GeneType.ACTUATOR_SECRETION: _actuator("secretion", 0.5, 0.004),
    GeneType.ACTUATOR_ADHESION: _actuator("adhesion", 1.0, 0.001),
    GeneType.ACTUATOR_DIVISION: _division,
    GeneType.METABOLISM_CHEMOSYNTHESIS: _metabolism(CHEMOSYNTHESIS),
    GeneType.METABOLISM_PHOTOSYNTHESIS: _metabolism(PHOTOSYNTHESIS),
    GeneType.METABOLISM_HETEROTROPHY: _metabolism(HETEROTROPHY),
    GeneType.METABOLISM_FERMENTATION: _metabolism(FERMENTATION),
    GeneType.NEURAL_CONNECTION: _structural,
    GeneType.NEURAL_NODE: _structural,
    GeneType.NEURAL_BIAS: _structural,
    GeneType.NEURAL_MODULATION: _structural,
    GeneType.DEFENSE_TOXIN: _toxin,
    GeneType.DEFENSE_SHELL: _shell,
    GeneType.DEFENSE_SPEED: _speed,
    GeneType.DEFENSE_CAMOUFLAGE: _camouflage,
    GeneType.SIGNAL_EMISSION: _signal_emission,
    GeneType.SIGNAL_RECEPTION: _signal_reception,
    GeneType.COOPERATION_MARKER: _cooperation,
}

_missing = set(GeneType) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"gene types without an expression handler: {sorted(_missing)}")


# ─────────────────────────────────────────────────────────────
# Genome
# ─────────────────────────────────────────────────────────────

class Genome:
    def __init__(self, genes, neural, mutation_rate=0.01):
        self.genes = list(genes)
        self.neural = neural
        self.mutation_rate = mutation_rate

    def __len__(self):
        return len(self.genes)

    def __repr__(self):
        return f"Genome(genes={len(self.genes)}, neural={self.neural!r})"

    def express(self):
        t = _Traits()
        metabolism_genes = 0
        for gene in self.genes:
            if GeneType.METABOLISM_CHEMOSYNTHESIS <= gene.type <= GeneType.METABOLISM_FERMENTATION:
                metabolism_genes += 1
            if not gene.enabled or gene.regulatory < REGULATORY_FLOOR:
                continue
            _HANDLERS[gene.type](t, gene)

        if not t.sensors:
            t.sensors.append(Sensor("internal", 0.0, 0.5, 0.0))
        if not t.actuators:
            t.actuators.append(Actuator("flagellum", 0.5, 0.005))

        # Perturbed size parameters can drift below zero
        size = max(0.1, t.body_size)
        mass = size * size * (1.0 + t.shell)
        root_mass = math.sqrt(mass)
        max_speed = t.speed * (1.0 - t.shell * 0.5) / root_mass if root_mass > 0 else 0.0
        n_inputs = sum(SENSOR_WIDTH[s.type] for s in t.sensors) + ORIENTATION_INPUTS

        return Phenotype(
            body_size=size,
            body_shape=t.shape,
            body_radius=max(0.5, size),
            mass=mass,
            max_speed=max_speed,
            sensors=tuple(t.sensors),
            actuators=tuple(t.actuators),
            metabolism_type=t.metabolism,
            metabolic_efficiency=0.3 + metabolism_genes * 0.1,
            energy_capacity=size * 10.0,
            basal_metabolic_rate=0.01 * mass,
            toxicity=t.toxicity,
            shell_thickness=t.shell,
            speed_multiplier=t.speed,
            camouflage=t.camouflage,
            signal_type=t.signal_type,
            signal_reception=t.signal_reception,
            cooperation_marker=t.cooperation,
            division_energy_cost=0.4 * mass,
            division_threshold=0.6,
            offspring_size=0.5,
            max_age=30000 + size * 5000,
            neural_inputs=n_inputs,
            neural_outputs=ACTUATOR_COUNT,
        )

    # ── Variation ──

    def replicate(self, rng, innovations, params=neat.DEFAULT_MUTATION):
        genes = []
        for gene in self.genes:
            if rng.next() < self.mutation_rate:
                values = list(gene.parameters)
                if values:
                    values[rng.int(0, len(values))] += rng.gaussian(0.0, 0.1)
                enabled = not gene.enabled if rng.next() < 0.05 else gene.enabled
                regulatory = min(1.0, max(0.0, gene.regulatory + rng.gaussian(0.0, 0.05)))
                gene = Gene(gene.type, tuple(values), regulatory, enabled)
            genes.append(gene)

        if rng.next() < self.mutation_rate * 0.5:
            genes.append(make_gene(rng.pick(list(GeneType)),
                                   (rng.range(0.0, 1.0), rng.range(0.0, 1.0)),
                                   rng.range(0.3, 1.0)))

        # Deletion pressure grows past 15 genes
        deletion_rate = self.mutation_rate * 0.3 + max(0, (len(genes) - 15) * 0.005)
        if rng.next() < deletion_rate and len(genes) > 5:
            del genes[rng.int(0, len(genes))]

        neural = neat.mutate(self.neural, rng, innovations, params)
        rate = max(0.0, self.mutation_rate + rng.gaussian(0.0, 0.001))
        return Genome(genes, neural, rate)

    def horizontal_transfer(self, donor, rng):
        """Copy of this genome with 1-3 genes taken from the donor appended."""
        genes = list(self.genes)
        if donor.genes:
            for _ in range(rng.int(1, min(4, len(donor.genes) + 1))):
                genes.append(rng.pick(donor.genes))
        return Genome(genes[:MAX_GENES], self.neural, self.mutation_rate)

    def duplicate_gene(self, rng):
        if not self.genes or len(self.genes) >= MAX_GENES:
            return self
        gene = rng.pick(self.genes)
        copy = gene._replace(regulatory=min(1.0, gene.regulatory * (0.8 + rng.next() * 0.4)))
        return Genome(self.genes + [copy], self.neural, self.mutation_rate)

    def crossover(self, other, rng):
        genes = []
        for i in range(max(len(self.genes), len(other.genes))):
            if i < len(self.genes) and i < len(other.genes):
                genes.append(self.genes[i] if rng.bool() else other.genes[i])
            elif i < len(self.genes):
                genes.append(self.genes[i])
            else:
                genes.append(other.genes[i])
        neural_child = neat.crossover(self.neural, other.neural, rng)
        return Genome(genes, neural_child, (self.mutation_rate + other.mutation_rate) / 2)

    def with_gene(self, index, gene):
        genes = list(self.genes)
        genes[index] = gene
        return Genome(genes, self.neural, self.mutation_rate)

    def distance_to(self, other, c1=1.0, c2=1.0, c3=0.4):
        dist = abs(len(self.genes) - len(other.genes)) * 0.5
        for a, b in zip(self.genes, other.genes):
            if a.type != b.type:
                dist += 1
        return dist + neat.genetic_distance(self.neural, other.neural, c1, c2, c3)

    @classmethod
    def create_initial(cls, rng, innovations, metabolism=CHEMOSYNTHESIS,
                       n_inputs=8, n_outputs=ACTUATOR_COUNT):
        genes = [
            make_gene(GeneType.BODY_SIZE, (rng.range(0.8, 1.5),)),
            make_gene(GeneType.BODY_SHAPE, (rng.range(0.0, 1.0),)),
            make_gene(GeneType.SENSOR_CHEMICAL, (10.0, 0.5, 0.0)),
            make_gene(GeneType.SENSOR_INTERNAL),
            make_gene(GeneType.ACTUATOR_FLAGELLUM, (1.0,)),
            make_gene(GeneType.ACTUATOR_INGESTION, (1.0,)),
            make_gene(GeneType.ACTUATOR_DIVISION, (1.0,)),
            make_gene(METABOLISM_GENES[metabolism], (1.0,)),
        ]
        return cls(genes, neat.create_minimal_genome(n_inputs, n_outputs, rng, innovations))
