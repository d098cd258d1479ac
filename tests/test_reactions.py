"""
Tests for rule matching and reaction execution
"""

import pytest

from primordium.catalysis import Catalysis
from primordium.config import Config
from primordium.elements import C, H, N, O, P
from primordium.molecule import Molecule
from primordium.reactions import CORE_RULES, ReactionSystem, hydrolysis_chance, matches_pattern
from primordium.rng import Rng


@pytest.fixture
def system():
    return ReactionSystem(Config(), Catalysis())


def certain(rule):
    return rule._replace(probability=1.0)


class TestMatching:
    def test_declared_order(self, system):
        assert [r.name for r in system.rules] == [
            "synthesis", "decomposition", "polymerization", "catalytic",
            "energy_transfer", "hydrolysis", "autocatalytic"]
        assert system.rules == CORE_RULES

    def test_pattern(self, make_chain):
        rule = CORE_RULES[2]
        assert matches_pattern(make_chain([C, H]), rule.reactants[0])
        assert not matches_pattern(make_chain([N, H]), rule.reactants[0])
        assert not matches_pattern(Molecule.single(C, 0, 0), rule.reactants[0])

    def test_symmetric(self, system, make_chain):
        """Swapping the reactants never changes the selected rule."""
        r = Rng(8)
        shapes = [[C], [H], [P], [N, N], [C, H], [C, C, C], [C, C, C, C], [P, O, C],
                  [N, C, C, C, O]]
        for _ in range(400):
            a = make_chain(r.pick(shapes), energy=r.range(0.0, 12.0))
            b = make_chain(r.pick(shapes), energy=r.range(0.0, 12.0))
            temperature = r.range(0.0, 100.0)
            wetness = r.range(0.0, 1.0)
            catalyst = make_chain([C, C, C]) if r.bool() else None
            ab = system.check_reaction(a, b, temperature, catalyst, wetness)
            ba = system.check_reaction(b, a, temperature, catalyst, wetness)
            assert (ab and ab.name) == (ba and ba.name)

    def test_activation_energy_gate(self, system):
        a = Molecule.single(C, 0, 0, energy=0.0)
        b = Molecule.single(N, 0, 0, energy=0.0)
        # 0 + 0 + 10 * 0.1 < 5
        assert system.check_reaction(a, b, 10.0, wetness=0.5) is None
        a.energy = 4.0
        assert system.check_reaction(a, b, 10.0, wetness=0.5).name == "synthesis"

    def test_condensation_blocked_when_wet(self, system):
        a = Molecule.single(C, 0, 0, energy=10.0)
        b = Molecule.single(N, 0, 0, energy=10.0)
        assert system.check_reaction(a, b, 50.0, wetness=1.0) is None
        assert system.check_reaction(a, b, 50.0, wetness=0.5).name == "synthesis"

    def test_hydrolysis_needs_water(self, make_chain):
        system = ReactionSystem(Config())
        system.rules = (system.rule("hydrolysis"),)
        polymer = make_chain([N, N, N, N], energy=5.0)
        water = Molecule.single(O, 0, 0, energy=1.0)
        assert system.check_reaction(polymer, water, 50.0, wetness=0.9).name == "hydrolysis"
        assert system.check_reaction(polymer, water, 50.0, wetness=0.2) is None

    def test_catalyst_required(self, system, make_chain):
        a = Molecule.single(C, 0, 0, energy=1.0)
        b = Molecule.single(N, 0, 0, energy=1.0)
        # Wet enough to skip condensation, so only the catalysed merge is left
        assert system.check_reaction(a, b, 20.0, None, 1.0) is None
        rule = system.check_reaction(a, b, 20.0, make_chain([C, C, C]), 1.0)
        assert rule.name == "catalytic"

    def test_catalysed_activation(self, system, make_chain):
        rule = system.rule("catalytic")
        a = Molecule.single(C, 0, 0)
        b = Molecule.single(N, 0, 0)
        assert system.effective_activation(rule, a, b) == pytest.approx(3.0)
        assert system.effective_activation(rule, a, b, make_chain([C, C, C])) == pytest.approx(0.9)

    def test_autocatalysis_boost(self, system, make_chain):
        rule = system.rule("autocatalytic")
        a = make_chain([C, C, C])
        b = make_chain([C, C, C])
        c = make_chain([C, C, N])
        assert system.effective_activation(rule, a, b) == pytest.approx(5.0)
        assert system.effective_activation(rule, a, c) == pytest.approx(10.0)

    def test_find_reaction_uses_pool(self, system, make_chain):
        a = Molecule.single(C, 0, 0, energy=1.0)
        b = Molecule.single(N, 0, 0, energy=1.0)
        pool = [Molecule.single(H, 0, 0), make_chain([C, C, C])]
        rule, catalyst = system.find_reaction(a, b, 20.0, 1.0, pool)
        assert rule.name == "catalytic"
        assert catalyst is pool[1]

    def test_redox_bonus(self, system):
        rule = system.rule("synthesis")
        h1 = Molecule.single(H, 0, 0)
        h2 = Molecule.single(H, 0, 0)
        o = Molecule.single(O, 0, 0)
        assert system.reaction_probability(h1, h2, rule) == pytest.approx(0.45)
        assert system.reaction_probability(h1, o, rule) == pytest.approx(0.3)

    def test_zone_catalytic_bias(self, system):
        rule = system.rule("synthesis")
        h = Molecule.single(H, 0, 0)
        o = Molecule.single(O, 0, 0)
        # 0.3 * (1 + 1.0 * 0.5)
        assert system.reaction_probability(h, o, rule, catalytic_bias=1.0) == pytest.approx(0.45)
        assert system.reaction_probability(h, o, rule, catalytic_bias=0.2) == pytest.approx(0.33)

    def test_oxidising_zone_widens_redox_bonus(self, system):
        rule = system.rule("synthesis")
        h = Molecule.single(H, 0, 0)
        o = Molecule.single(O, 0, 0)
        # H + O sum to -0.04; a zone at 0.8 puts them past the -0.4 threshold
        assert system.reaction_probability(h, o, rule, redox=0.8) == pytest.approx(0.45)
        assert system.reaction_probability(h, o, rule, redox=0.3) == pytest.approx(0.3)
        assert system.reaction_probability(h, o, rule, 1.0, 0.8) == pytest.approx(0.675)

    def test_probability_capped(self, system):
        rule = system.rule("synthesis")._replace(probability=0.9)
        h1 = Molecule.single(H, 0, 0)
        h2 = Molecule.single(H, 0, 0)
        assert system.reaction_probability(h1, h2, rule, catalytic_bias=1.0) == 1.0


class TestHydrolysisChance:
    def test_neutral(self):
        assert hydrolysis_chance(0.01, 0.5) == pytest.approx(0.005)
        assert hydrolysis_chance(0.01, 0.5, 7.0) == pytest.approx(0.005)

    def test_acid_doubles_at_most(self):
        assert hydrolysis_chance(0.01, 1.0, 3.5) == pytest.approx(0.015)
        assert hydrolysis_chance(0.01, 1.0, 0.0) == pytest.approx(0.02)

    def test_alkaline_is_neutral(self):
        assert hydrolysis_chance(0.01, 1.0, 10.0) == pytest.approx(0.01)

    def test_dry_never_hydrolyses(self):
        assert hydrolysis_chance(0.01, 0.0, 2.0) == 0.0


class TestExecution:
    def test_merge(self, system):
        rule = certain(system.rule("synthesis"))
        a = Molecule.single(C, 0.0, 0.0, energy=3.0)
        b = Molecule.single(O, 2.0, 4.0, energy=1.5)
        [product] = system.execute_reaction(a, b, rule, Rng(1))
        assert product.formula == "CO"
        assert len(product.bonds) == 1
        assert product.energy == pytest.approx(2.5)
        assert (product.x, product.y) == (1.0, 2.0)
        # Reactants are untouched
        assert a.bonds == [] and b.bonds == []

    def test_merge_energy_floor(self, system):
        rule = certain(system.rule("synthesis"))
        a = Molecule.single(C, 0, 0, energy=0.5)
        b = Molecule.single(N, 0, 0, energy=0.5)
        [product] = system.execute_reaction(a, b, rule, Rng(1))
        assert product.energy == 0.0

    def test_merge_bond_kind(self, system):
        rule = certain(system.rule("synthesis"))
        # C-C: no electronegativity gap, triple bond
        [cc] = system.execute_reaction(Molecule.single(C, 0, 0), Molecule.single(C, 0, 0), rule, Rng(1))
        assert cc.bonds[0].type == "covalent" and cc.bonds[0].order == 3
        # H-O: gap above .4 with H and O -> hydrogen bond
        [ho] = system.execute_reaction(Molecule.single(H, 0, 0), Molecule.single(O, 0, 0), rule, Rng(1))
        assert ho.bonds[0].type == "hydrogen"

    def test_merge_without_free_site(self, system, make_chain):
        rule = certain(system.rule("synthesis"))
        h2 = make_chain([H, H])
        assert system.execute_reaction(h2, Molecule.single(C, 0, 0), rule, Rng(1)) == []

    def test_merge_respects_complexity_cap(self, make_chain):
        system = ReactionSystem(Config(max_molecule_complexity=5))
        rule = certain(system.rule("synthesis"))
        a = make_chain([C, C, C])
        b = make_chain([C, C, C])
        assert system.execute_reaction(a, b, rule, Rng(1)) == []

    def test_split_partitions_energy(self, system, make_chain):
        rule = certain(system.rule("decomposition"))
        big = make_chain([C, C, N, O], energy=7.0)
        small = Molecule.single(H, 0, 0, energy=2.0)
        products = system.execute_reaction(big, small, rule, Rng(4))
        assert len(products) == 3
        left, right, passthrough = products
        assert len(left.atoms) + len(right.atoms) == 4
        assert left.energy + right.energy == pytest.approx(12.0)
        assert left.energy / right.energy == pytest.approx(len(left.atoms) / len(right.atoms))
        assert passthrough.formula == "H" and passthrough.energy == 2.0
        assert passthrough.id != small.id
        for frag in (left, right):
            assert all(0 <= bd.atom_a < len(frag.atoms) and 0 <= bd.atom_b < len(frag.atoms)
                       for bd in frag.bonds)

    def test_transfer(self, system):
        rule = certain(system.rule("energy_transfer"))
        a = Molecule.single(P, 0, 0, energy=4.0)
        b = Molecule.single(O, 0, 0, energy=0.0)
        products = system.execute_reaction(a, b, rule, Rng(1))
        assert [p.energy for p in products] == [2.0, 2.0]
        assert [p.formula for p in products] == ["P", "O"]

    def test_failed_draw(self, system):
        rule = system.rule("synthesis")._replace(probability=0.0)
        a = Molecule.single(C, 0, 0)
        b = Molecule.single(C, 0, 0)
        assert system.execute_reaction(a, b, rule, Rng(1)) == []

    def test_deterministic(self, system, make_chain):
        rule = certain(system.rule("decomposition"))
        big = make_chain([C, C, C, C, C, N], energy=3.0)
        small = Molecule.single(O, 0, 0)
        first = system.execute_reaction(big, small, rule, Rng(99))
        second = system.execute_reaction(big, small, rule, Rng(99))
        assert [p.formula for p in first] == [p.formula for p in second]
        assert [p.energy for p in first] == [p.energy for p in second]
