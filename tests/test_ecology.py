"""
Tests for ecology: ecosystem, food web, extinctions, symbiosis, coevolution
"""

import math

import pytest

from primordium import neat
from primordium.coevolution import (NO_ARMS_RACE, CoevolutionSystem, defensive_score,
                                    offensive_score)
from primordium.ecosystem import Ecosystem, FoodWeb, ResourceCycle
from primordium.extinction import ASTEROID, OXYGEN_CRISIS, VOLCANIC, ExtinctionEventSystem
from primordium.genome import Genome, GeneType, make_gene
from primordium.organism import Organism
from primordium.rng import Rng
from primordium.speciation import SpeciationSystem
from primordium.symbiosis import (COMMENSALISM, MIN_UPDATES, MUTUALISM, PARASITISM,
                                  SymbiosisSystem, classify)


METABOLISM = {
    "chemosynthesis": GeneType.METABOLISM_CHEMOSYNTHESIS,
    "photosynthesis": GeneType.METABOLISM_PHOTOSYNTHESIS,
    "heterotrophy": GeneType.METABOLISM_HETEROTROPHY,
    "fermentation": GeneType.METABOLISM_FERMENTATION,
}


def critter(metabolism="chemosynthesis", species=0, x=0.0, y=0.0, cooperation=None, energy=5.0):
    genes = [make_gene(GeneType.BODY_SIZE, (1.0,)), make_gene(METABOLISM[metabolism])]
    if cooperation is not None:
        genes.append(make_gene(GeneType.COOPERATION_MARKER, (cooperation,)))
    neural = neat.NeatGenome([neat.NodeGene(0, neat.INPUT), neat.NodeGene(1, neat.OUTPUT)], [])
    org = Organism(Genome(genes, neural), x, y, energy=energy)
    org.species = species
    return org


class TestEcosystem:
    def test_update(self, rng):
        orgs = [critter("photosynthesis") for _ in range(2)] + \
               [critter("heterotrophy") for _ in range(2)]
        speciation = SpeciationSystem(threshold=0.5)
        speciation.assign_species(orgs, rng)
        eco = Ecosystem()
        eco.update(orgs, speciation)

        assert speciation.species_count == 2
        assert eco.oxygen_level == pytest.approx(0.002)
        assert eco.diversity_index == pytest.approx(math.log(2))
        assert eco.trophic_level_count == 2
        assert eco.total_energy == pytest.approx(20.0)
        assert eco.niches["surface_phototroph"].current_users == 2
        assert eco.niche_pressure(orgs[2]) == pytest.approx(2 / 100)

    def test_predators_reach_level_three(self, rng):
        hunter = critter("heterotrophy")
        hunter.kill_count = 1
        speciation = SpeciationSystem()
        speciation.assign_species([hunter], rng)
        eco = Ecosystem()
        eco.update([hunter], speciation)
        assert [lvl.level for lvl in eco.trophic_levels] == [3]

    def test_extinction_rate(self, rng):
        speciation = SpeciationSystem(threshold=0.5)
        eco = Ecosystem()
        orgs = [critter("photosynthesis"), critter("heterotrophy")]
        speciation.assign_species(orgs, rng)
        eco.update(orgs, speciation)
        speciation.assign_species(orgs[:1], rng)
        eco.update(orgs[:1], speciation)
        assert eco.extinction_rate == 1
        assert eco.diversity_index == 0.0

    def test_empty(self, rng):
        eco = Ecosystem()
        eco.update([], SpeciationSystem())
        assert eco.diversity_index == 0.0 and eco.oxygen_level == 0.0


class TestFoodWebAndResources:
    def test_food_web(self):
        web = FoodWeb()
        web.record_predation(1, 2)
        web.record_predation(1, 2)
        web.record_predation(3, 2)
        assert web.links == {(1, 2): 2, (3, 2): 1}
        assert web.connectance(3) == pytest.approx(2 / 6)
        assert web.connectance(1) == 0.0

    def test_resource_cycle(self):
        cycle = ResourceCycle(minerals=10.0)
        cycle.add_dead_matter(4.0)
        assert cycle.decompose(0.25) == pytest.approx(1.0)
        assert cycle.organic_matter == pytest.approx(3.0)
        assert cycle.dissolved_minerals == pytest.approx(10.8)
        assert cycle.consume_minerals(20.0) == pytest.approx(10.8)
        assert cycle.dissolved_minerals == 0.0


class TestExtinction:
    def test_zero_rates_never_fire(self):
        system = ExtinctionEventSystem()
        r = Rng(99)
        for _ in range(100000):
            assert system.check_for_event(r, 0.0, 0.0, 0.0, 0.3) is None

    def test_oxygen_crisis(self, rng):
        system = ExtinctionEventSystem()
        assert system.check_for_event(rng, 0.0, 0.0, 0.5, 0.3) == OXYGEN_CRISIS

    def test_certain_volcanism(self, rng):
        assert ExtinctionEventSystem().check_for_event(rng, 1.0, 0.0, 0.0, 0.3) == VOLCANIC

    def test_one_event_at_a_time(self, rng):
        system = ExtinctionEventSystem()
        system.start_event(ASTEROID, 100)
        assert system.check_for_event(rng, 1.0, 1.0, 1.0, 0.3) is None

    def test_kill_probability_falls_linearly(self):
        system = ExtinctionEventSystem()
        assert system.kill_probability(0) == 0.0
        system.start_event(VOLCANIC, 1000)
        assert system.kill_probability(1000) == pytest.approx(0.003)
        assert system.kill_probability(2000) == pytest.approx(0.0015)
        assert system.kill_probability(3001) == 0.0

    def test_event_closes_with_record(self, rng):
        system = ExtinctionEventSystem()
        orgs = [critter() for _ in range(10)]
        system.start_event(VOLCANIC, 0, population=12, species=3)
        system.apply_effects(orgs, 500, rng)
        assert system.apply_effects(orgs, 2001, rng, species_count=1) == 0
        assert system.active is None
        record = system.records[0]
        assert record.type == VOLCANIC
        assert record.species_lost == 2
        assert record.population_before == 12
        assert record.population_after == sum(1 for o in orgs if o.alive)

    def test_kills_with_high_probability(self):
        system = ExtinctionEventSystem()
        system.start_event(ASTEROID, 0)
        orgs = [critter() for _ in range(2000)]
        killed = system.apply_effects(orgs, 0, Rng(4))
        assert 0 < killed < 100
        assert killed == sum(1 for o in orgs if not o.alive)


class TestSymbiosis:
    def test_classify(self):
        assert classify(critter("chemosynthesis"), critter("photosynthesis")) == MUTUALISM
        assert classify(critter("heterotrophy"), critter("photosynthesis")) == PARASITISM
        assert classify(critter("heterotrophy", cooperation=0.9),
                        critter("fermentation", cooperation=0.8)) == MUTUALISM
        assert classify(critter("chemosynthesis"), critter("chemosynthesis")) == COMMENSALISM

    def test_bond_forms_and_pays_after_persisting(self):
        a = critter("chemosynthesis", species=1, x=10.0, y=10.0)
        b = critter("photosynthesis", species=2, x=11.0, y=10.0)
        orgs = [a, b]

        def get_nearby(x, y, radius):
            return [o for o in orgs if (o.x - x) ** 2 + (o.y - y) ** 2 <= radius * radius]

        system = SymbiosisSystem()
        system.update(orgs, get_nearby)
        assert len(system) == 1
        assert system.bonds_by_type()[MUTUALISM] == 1
        assert system.apply_effects({o.id: o for o in orgs}) == (0.0, 0.0)

        for _ in range(MIN_UPDATES):
            system.update(orgs, get_nearby)
        assert len(system) == 1
        gained, lost = system.apply_effects({o.id: o for o in orgs})
        assert gained > 0.0 and lost == 0.0
        assert a.energy > 5.0 and b.energy > 5.0
        assert system.bonds_for(a.id) == system.bonds_for(b.id)

    def test_same_species_never_bond(self):
        orgs = [critter(species=1, x=1.0), critter(species=1, x=1.5)]
        system = SymbiosisSystem()
        system.update(orgs, lambda x, y, r: orgs)
        assert len(system) == 0

    def test_dead_partner_breaks_bond(self):
        orgs = [critter(species=1), critter("photosynthesis", species=2, x=0.5)]
        system = SymbiosisSystem()
        system.update(orgs, lambda x, y, r: orgs)
        orgs[1].die()
        system.update(orgs, lambda x, y, r: orgs)
        assert len(system) == 0


class TestCoevolution:
    def test_scores(self):
        org = critter()
        assert offensive_score(org) == pytest.approx(0.7)
        assert defensive_score(org) == pytest.approx(0.3)

    def test_no_links_no_race(self):
        system = CoevolutionSystem()
        assert system.update([critter()], FoodWeb(), 10) == NO_ARMS_RACE

    def test_tracks_established_links(self):
        predator = critter("heterotrophy", species=1)
        prey = critter("photosynthesis", species=2)
        web = FoodWeb()
        web.record_predation(1, 2)
        system = CoevolutionSystem()
        system.update([predator, prey], web, 10)
        assert len(system) == 0

        web.record_predation(1, 2)
        metrics = system.update([predator, prey], web, 20)
        assert len(system) == 1
        assert metrics.predator_pressure == 2
        assert metrics.predator_offense == pytest.approx(0.7)
        assert metrics.prey_defense == pytest.approx(0.3)

        total = system.apply_pressure([predator, prey])
        assert total == pytest.approx(0.3 * 0.001 + 0.7 * 0.0005)
