"""
Tests for genomes and phenotype expression
"""

import pytest

from primordium import neat
from primordium.genome import (_HANDLERS, HETEROTROPHY, MAX_GENES, REGULATORY_FLOOR, Genome,
                               GeneType, make_gene)
from primordium.rng import Rng


def bare_neural():
    return neat.NeatGenome([neat.NodeGene(0, neat.INPUT), neat.NodeGene(1, neat.OUTPUT)], [])


class TestExpression:
    def test_every_gene_type_has_a_handler(self):
        assert set(_HANDLERS) == set(GeneType)
        assert len(GeneType) == 29

    def test_initial_genome(self, rng, innovations):
        genome = Genome.create_initial(rng, innovations, HETEROTROPHY)
        ph = genome.express()
        assert ph.metabolism_type == HETEROTROPHY
        assert [s.type for s in ph.sensors] == ["chemical", "internal"]
        assert [a.type for a in ph.actuators] == ["flagellum", "ingestion", "division"]
        assert ph.neural_inputs == 2 + 2 + 2
        assert ph.metabolic_efficiency == pytest.approx(0.4)
        assert 0.8 <= ph.body_size < 1.5
        assert ph.energy_capacity == pytest.approx(ph.body_size * 10.0)

    def test_express_does_not_change_genome(self, rng, innovations):
        genome = Genome.create_initial(rng, innovations)
        genes = list(genome.genes)
        genome.express()
        genome.express()
        assert genome.genes == genes

    def test_fallback_sensor_and_actuator(self):
        ph = Genome([make_gene(GeneType.BODY_SIZE, (2.0,))], bare_neural()).express()
        assert [s.type for s in ph.sensors] == ["internal"]
        assert [(a.type, a.strength) for a in ph.actuators] == [("flagellum", 0.5)]
        assert ph.body_size == 2.0
        assert ph.mass == pytest.approx(4.0)
        assert ph.max_speed == pytest.approx(0.5)

    def test_regulatory_floor_silences_gene(self):
        quiet = make_gene(GeneType.DEFENSE_SHELL, (0.5,), regulatory=REGULATORY_FLOOR / 2)
        loud = make_gene(GeneType.DEFENSE_SHELL, (0.5,), regulatory=1.0)
        assert Genome([quiet], bare_neural()).express().shell_thickness == 0.0
        assert Genome([loud], bare_neural()).express().shell_thickness == 0.5

    def test_disabled_gene_silent(self):
        gene = make_gene(GeneType.DEFENSE_TOXIN, (0.9,), enabled=False)
        assert Genome([gene], bare_neural()).express().toxicity == 0.0

    def test_size_floor(self):
        ph = Genome([make_gene(GeneType.BODY_SIZE, (-3.0,))], bare_neural()).express()
        assert ph.body_size == 0.1
        assert ph.body_radius == 0.5

    def test_shell_slows(self):
        shell = make_gene(GeneType.DEFENSE_SHELL, (0.4,))
        ph = Genome([shell], bare_neural()).express()
        assert ph.mass == pytest.approx(1.4)
        assert ph.max_speed == pytest.approx(0.8 / 1.4 ** 0.5)

    def test_signal_reception_adds_sensor(self):
        gene = make_gene(GeneType.SIGNAL_RECEPTION, (0.8, 15.0))
        ph = Genome([gene], bare_neural()).express()
        assert [(s.type, s.range) for s in ph.sensors] == [("signal", 15.0)]
        assert ph.sensors[0].sensitivity == pytest.approx(0.8)
        assert ph.signal_reception == pytest.approx(0.8)
        assert ph.neural_inputs == 3 + 2

    def test_has_actuator(self, rng, innovations):
        ph = Genome.create_initial(rng, innovations).express()
        assert ph.has_actuator("ingestion")
        assert not ph.has_actuator("secretion")

    def test_speed_genes_stack(self):
        speed = make_gene(GeneType.DEFENSE_SPEED, (0.5,))
        ph = Genome([speed, speed], bare_neural()).express()
        assert ph.speed_multiplier == pytest.approx(2.25)


class TestVariation:
    def test_replicate_returns_new_genome(self, rng, innovations):
        parent = Genome.create_initial(rng, innovations)
        genes = list(parent.genes)
        child = parent.replicate(rng, innovations)
        assert child is not parent
        assert child.neural is not parent.neural
        assert parent.genes == genes
        assert child.mutation_rate >= 0.0

    def test_zero_rate_keeps_genes(self, innovations):
        r = Rng(8)
        parent = Genome.create_initial(r, innovations)
        parent.mutation_rate = 0.0
        child = parent.replicate(r, innovations)
        assert child.genes == parent.genes

    def test_horizontal_transfer(self, rng, innovations):
        a = Genome.create_initial(rng, innovations)
        b = Genome.create_initial(rng, innovations)
        child = a.horizontal_transfer(b, rng)
        added = len(child) - len(a)
        assert 1 <= added <= 3
        assert child.genes[:len(a)] == a.genes
        for gene in child.genes[len(a):]:
            assert gene in b.genes

    def test_horizontal_transfer_capped(self, rng):
        big = Genome([make_gene(GeneType.BODY_SYMMETRY)] * MAX_GENES, bare_neural())
        donor = Genome([make_gene(GeneType.DEFENSE_SHELL)] * 5, bare_neural())
        assert len(big.horizontal_transfer(donor, rng)) == MAX_GENES

    def test_duplicate_gene(self, rng):
        g = Genome([make_gene(GeneType.BODY_SIZE, (1.0,), 0.5)], bare_neural())
        dup = g.duplicate_gene(rng)
        assert len(dup) == 2
        assert dup.genes[1].type == GeneType.BODY_SIZE
        assert 0.4 <= dup.genes[1].regulatory <= 0.6
        full = Genome([make_gene(GeneType.BODY_SIZE)] * MAX_GENES, bare_neural())
        assert full.duplicate_gene(rng) is full

    def test_crossover_takes_longer_tail(self, rng, innovations):
        a = Genome.create_initial(rng, innovations)
        b = Genome(a.genes + [make_gene(GeneType.DEFENSE_TOXIN)], a.neural.copy())
        child = a.crossover(b, rng)
        assert len(child) == len(b)
        assert child.genes[-1].type == GeneType.DEFENSE_TOXIN

    def test_with_gene(self, rng, innovations):
        g = Genome.create_initial(rng, innovations)
        changed = g.with_gene(0, make_gene(GeneType.BODY_SIZE, (3.0,)))
        assert changed.express().body_size == 3.0
        assert g.genes[0] != changed.genes[0]


class TestDistance:
    def test_self_distance_zero(self, rng, innovations):
        g = Genome.create_initial(rng, innovations)
        assert g.distance_to(g) == 0.0

    def test_length_and_type_differences(self):
        a = Genome([make_gene(GeneType.BODY_SIZE)], bare_neural())
        b = Genome([make_gene(GeneType.BODY_SHAPE), make_gene(GeneType.DEFENSE_SHELL)],
                   bare_neural())
        assert a.distance_to(b) == pytest.approx(1.5)
