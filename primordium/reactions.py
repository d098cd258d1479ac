"""
Primordium — Reaction System
============================
Rule-based pair chemistry. Each rule declares two reactant patterns (tried in
both orderings), a temperature window, an optional catalyst pattern, a base
activation energy and probability, and an energy delta. The first eligible
rule in declaration order wins.

Temperatures here are chemistry degrees: zone temperature (0..1) times
`Config.temperature_scale`.
"""

from collections import namedtuple

from .config import Config
from .elements import ELEMENT_PROPERTIES, C, H, N, O, P
from .molecule import Atom, Bond, Molecule, first_free_site


ReactantPattern = namedtuple(
    "ReactantPattern", ["min_atoms", "required_elements", "min_chain_length"], defaults=(1, (), 0))

ReactionRule = namedtuple("ReactionRule", [
    "name", "reactants", "activation_energy", "energy_delta", "catalytic_reduction",
    "temperature_range", "probability", "kind", "catalyst_pattern",
    "condensation", "hydrolysis", "autocatalytic",
], defaults=(None, False, False, False))

MERGE = "merge"
SPLIT = "split"
TRANSFER = "transfer"


CORE_RULES = (
    ReactionRule("synthesis", (ReactantPattern(1), ReactantPattern(1)),
                 5.0, -2.0, 0.5, (0.0, 100.0), 0.3, MERGE,
                 condensation=True),
    ReactionRule("decomposition", (ReactantPattern(3), ReactantPattern(1)),
                 15.0, 5.0, 0.4, (30.0, 100.0), 0.1, SPLIT),
    ReactionRule("polymerization", (ReactantPattern(2, (C,)), ReactantPattern(1)),
                 8.0, -3.0, 0.6, (10.0, 80.0), 0.15, MERGE,
                 condensation=True),
    ReactionRule("catalytic", (ReactantPattern(1), ReactantPattern(1)),
                 3.0, -1.0, 0.7, (0.0, 100.0), 0.25, MERGE,
                 catalyst_pattern=ReactantPattern(3, (), 2)),
    ReactionRule("energy_transfer", (ReactantPattern(1, (P,)), ReactantPattern(1)),
                 2.0, 0.0, 0.3, (0.0, 100.0), 0.2, TRANSFER),
    ReactionRule("hydrolysis", (ReactantPattern(4, (), 3), ReactantPattern(1)),
                 6.0, 2.0, 0.5, (10.0, 100.0), 0.1, SPLIT,
                 hydrolysis=True),
    ReactionRule("autocatalytic", (ReactantPattern(3, (), 3), ReactantPattern(3, (), 3)),
                 10.0, -4.0, 0.6, (20.0, 90.0), 0.2, MERGE,
                 condensation=True, autocatalytic=True),
)


def matches_pattern(mol, pattern):
    if len(mol.atoms) < pattern.min_atoms:
        return False
    for el in pattern.required_elements:
        if not mol.contains(el):
            return False
    if pattern.min_chain_length and mol.chain_length() < pattern.min_chain_length:
        return False
    return True


NEUTRAL_PH = 7.0


def hydrolysis_chance(base_rate, wetness, ph=NEUTRAL_PH):
    """Per-tick chance that a wet polymer loses a bond. Acid speeds it up, up to double."""
    acid = min(1.0, max(0.0, NEUTRAL_PH - ph) / NEUTRAL_PH)
    return base_rate * wetness * (1.0 + acid)


def _bond_between(el_a, el_b, free_a, free_b):
    """Bond type, order and strength chosen from the electronegativity gap."""
    diff = abs(ELEMENT_PROPERTIES[el_a].electronegativity - ELEMENT_PROPERTIES[el_b].electronegativity)
    if diff > 0.4:
        if H in (el_a, el_b) and (N in (el_a, el_b) or O in (el_a, el_b)):
            return "hydrogen", 1, 0.5 * (1.0 - diff * 0.5)
        return "ionic", 1, 1.0 - diff * 0.5
    order = 3 if diff < 0.1 else 2 if diff < 0.25 else 1
    order = max(1, min(order, free_a, free_b))
    return "covalent", order, (1.0 - diff * 0.5) * (1.0 + 0.25 * (order - 1))


def _fragment(atoms, bonds, lo, hi):
    """Atoms [lo, hi) with the bonds fully inside that range, re-indexed."""
    part = [Atom(a.element) for a in atoms[lo:hi]]
    kept = []
    for b in bonds:
        if lo <= b.atom_a < hi and lo <= b.atom_b < hi:
            nb = Bond(b.atom_a - lo, b.atom_b - lo, b.strength, b.type, b.order)
            part[nb.atom_a].bond_count += nb.order
            part[nb.atom_b].bond_count += nb.order
            kept.append(nb)
    return part, kept


class ReactionSystem:
    def __init__(self, cfg=None, catalysis=None, extra_rules=()):
        c = cfg or Config()
        self.catalysis = catalysis
        self.rules = tuple(CORE_RULES) + tuple(extra_rules)
        self.condensation_wetness_max = c.condensation_wetness_max
        self.hydrolysis_wetness_min = c.hydrolysis_wetness_min
        self.autocatalysis_boost = c.autocatalysis_boost
        self.redox_bonus_threshold = c.redox_bonus_threshold
        self.redox_bonus_multiplier = c.redox_bonus_multiplier
        self.zone_catalysis_weight = c.zone_catalysis_weight
        self.max_complexity = c.max_molecule_complexity

    def rule(self, name):
        for r in self.rules:
            if r.name == name:
                return r
        raise KeyError(name)

    # ── Matching ──

    def check_reaction(self, a, b, temperature, catalyst=None, wetness=1.0):
        for rule in self.rules:
            if self._applies(rule, a, b, temperature, catalyst, wetness):
                return rule
        return None

    def find_reaction(self, a, b, temperature, wetness, pool=()):
        """Like check_reaction, but picks a catalyst per rule from `pool`."""
        for rule in self.rules:
            catalyst = None
            if pool and self.catalysis is not None:
                catalyst = self.catalysis.find_catalyst(pool, rule)
            if self._applies(rule, a, b, temperature, catalyst, wetness):
                return rule, catalyst
        return None, None

    def _catalyses(self, catalyst, rule):
        if self.catalysis is not None:
            return self.catalysis.catalyses(catalyst, rule)
        return rule.catalyst_pattern is not None and matches_pattern(catalyst, rule.catalyst_pattern)

    def _applies(self, rule, a, b, temperature, catalyst, wetness):
        lo, hi = rule.temperature_range
        if temperature < lo or temperature > hi:
            return False
        # Wet/dry gate
        if rule.condensation and wetness > self.condensation_wetness_max:
            return False
        if rule.hydrolysis and wetness < self.hydrolysis_wetness_min:
            return False

        p0, p1 = rule.reactants
        forward = matches_pattern(a, p0) and matches_pattern(b, p1)
        if not forward and not (matches_pattern(a, p1) and matches_pattern(b, p0)):
            return False

        if catalyst is not None and not self._catalyses(catalyst, rule):
            catalyst = None
        if rule.catalyst_pattern is not None and catalyst is None:
            return False

        available = a.energy + b.energy + temperature * 0.1
        return available >= self.effective_activation(rule, a, b, catalyst)

    def effective_activation(self, rule, a, b, catalyst=None):
        ea = rule.activation_energy
        if catalyst is not None:
            if rule.catalyst_pattern is not None and matches_pattern(catalyst, rule.catalyst_pattern):
                ea *= 1.0 - rule.catalytic_reduction
            if self.catalysis is not None:
                ea -= self.catalysis.calculate_catalytic_effect(catalyst, rule)
        if rule.autocatalytic and a.formula == b.formula:
            ea /= self.autocatalysis_boost
        return max(0.0, ea)

    # ── Execution ──

    def reaction_probability(self, a, b, rule, catalytic_bias=0.0, redox=0.0):
        """Firing chance in a zone with the given mineral catalytic bias and redox potential.

        Oxidising surroundings widen the redox bonus: the reactants only need to
        be more reducing than the zone by the threshold.
        """
        p = rule.probability * (1.0 + catalytic_bias * self.zone_catalysis_weight)
        if a.redox_potential + b.redox_potential - redox < self.redox_bonus_threshold:
            p *= self.redox_bonus_multiplier
        return min(1.0, p)

    def execute_reaction(self, a, b, rule, rng, catalytic_bias=0.0, redox=0.0):
        """Products of `rule` applied to a and b, or [] when it does not fire."""
        if rng.next() > self.reaction_probability(a, b, rule, catalytic_bias, redox):
            return []
        if rule.kind == SPLIT:
            return self._split(a, b, rule, rng)
        if rule.kind == TRANSFER:
            return self._transfer(a, b, rule)
        return self._merge(a, b, rule)

    def _merge(self, a, b, rule):
        if len(a.atoms) + len(b.atoms) > self.max_complexity:
            return []
        ia = first_free_site(a.atoms)
        ib = first_free_site(b.atoms)
        if ia < 0 or ib < 0:
            return []

        atoms_a, bonds_a = a.copy_structure()
        atoms_b, bonds_b = b.copy_structure()
        offset = len(atoms_a)
        bonds = bonds_a + [Bond(bd.atom_a + offset, bd.atom_b + offset, bd.strength, bd.type, bd.order)
                           for bd in bonds_b]
        bond_type, order, strength = _bond_between(
            atoms_a[ia].element, atoms_b[ib].element,
            atoms_a[ia].free_sites(), atoms_b[ib].free_sites())

        total = a.energy + b.energy + rule.energy_delta
        product = Molecule(atoms_a + atoms_b, bonds,
                           (a.x + b.x) * 0.5, (a.y + b.y) * 0.5, max(0.0, total))
        product.add_bond(ia, ib + offset, strength, bond_type, order)
        product.vx = (a.vx + b.vx) * 0.5
        product.vy = (a.vy + b.vy) * 0.5
        product.catalytic_sites = list(a.catalytic_sites) + list(b.catalytic_sites)
        return [product]

    def _split(self, a, b, rule, rng):
        source, other = (a, b) if len(a.atoms) >= len(b.atoms) else (b, a)
        n = len(source.atoms)
        if n < 2:
            return []
        cut = rng.int(1, n)
        atoms_l, bonds_l = _fragment(source.atoms, source.bonds, 0, cut)
        atoms_r, bonds_r = _fragment(source.atoms, source.bonds, cut, n)

        pool = max(0.0, source.energy + rule.energy_delta)
        e_left = pool * cut / n
        dx = rng.range(-1.0, 1.0)
        dy = rng.range(-1.0, 1.0)
        left = Molecule(atoms_l, bonds_l, source.x + dx, source.y + dy, e_left)
        right = Molecule(atoms_r, bonds_r, source.x - dx, source.y - dy, pool - e_left)

        atoms_o, bonds_o = other.copy_structure()
        passthrough = Molecule(atoms_o, bonds_o, other.x, other.y, other.energy)
        passthrough.vx, passthrough.vy = other.vx, other.vy
        passthrough.catalytic_sites = list(other.catalytic_sites)
        return [left, right, passthrough]

    def _transfer(self, a, b, rule):
        share = max(0.0, a.energy + b.energy + rule.energy_delta) * 0.5
        products = []
        for mol in (a, b):
            atoms, bonds = mol.copy_structure()
            copy = Molecule(atoms, bonds, mol.x, mol.y, share)
            copy.vx, copy.vy = mol.vx, mol.vy
            copy.catalytic_sites = list(mol.catalytic_sites)
            products.append(copy)
        return products
