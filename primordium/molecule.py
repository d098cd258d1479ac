"""
Primordium — Molecules
======================
Atoms, bonds and molecules. Structure analysis (chain length, motifs used by
protocell formation and milestones) runs over the bond graph; the chain-length
cache is dropped whenever a bond is added or broken.
"""

from collections import namedtuple, deque
from dataclasses import dataclass

from .elements import ELEMENT_PROPERTIES, FORMULA_ORDER, C, N, P, S
from .ids import new_id


@dataclass
class Atom:
    element: str
    bond_count: int = 0

    def free_sites(self):
        return ELEMENT_PROPERTIES[self.element].bond_sites - self.bond_count


@dataclass
class Bond:
    atom_a: int
    atom_b: int
    strength: float
    type: str = "covalent"    # covalent | ionic | hydrogen
    order: int = 1


CatalyticSite = namedtuple("CatalyticSite", ["reaction", "efficiency"])

Formation = namedtuple(
    "Formation", ["parent_formulas", "reaction", "zone", "catalyst_formula", "tick"])

ROLES = ("food", "waste", "catalyst", "membrane", "genome_segment", "toxin", "unknown")


class Molecule:
    def __init__(self, atoms, bonds=None, x=0.0, y=0.0, energy=0.0):
        self.id = new_id()
        self.atoms = list(atoms)
        self.bonds = list(bonds or [])
        self.x = float(x)
        self.y = float(y)
        self.vx = 0.0
        self.vy = 0.0
        self.energy = float(energy)
        self.age = 0
        self.catalytic_sites = []
        self.role = "unknown"
        self.formation = None

        props = [ELEMENT_PROPERTIES[a.element] for a in self.atoms]
        self.mass = sum(p.mass for p in props)
        if len(props) > 1:
            en = [p.electronegativity for p in props]
            self.polarity = max(en) - min(en)
        else:
            self.polarity = 0.0
        self.redox_potential = (sum(p.electronegativity for p in props) / len(props) - 0.5
                                if props else 0.0)
        self._formula = None
        self._chain_length = -1
        self.half_life = self.estimate_half_life()
        assert all(0 <= b.atom_a < len(self.atoms) and 0 <= b.atom_b < len(self.atoms)
                   for b in self.bonds), "bond index out of range"

    @classmethod
    def single(cls, element, x, y, energy=0.0):
        return cls([Atom(element)], [], x, y, energy)

    @classmethod
    def chain(cls, elements, x=0.0, y=0.0, energy=0.0, strength=0.8):
        """Linear chain of single covalent bonds."""
        atoms = [Atom(e) for e in elements]
        bonds = []
        for i in range(1, len(atoms)):
            bonds.append(Bond(i - 1, i, strength))
            atoms[i - 1].bond_count += 1
            atoms[i].bond_count += 1
        return cls(atoms, bonds, x, y, energy)

    # ── Derived values ──

    def __len__(self):
        return len(self.atoms)

    def __eq__(self, other):
        return isinstance(other, Molecule) and other.id == self.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Molecule(id={self.id}, {self.formula}, e={self.energy:.2f})"

    @property
    def formula(self):
        if self._formula is None:
            counts = {}
            for atom in self.atoms:
                counts[atom.element] = counts.get(atom.element, 0) + 1
            parts = []
            for el in FORMULA_ORDER:
                n = counts.get(el, 0)
                if n:
                    parts.append(el if n == 1 else f"{el}{n}")
            self._formula = "".join(parts)
        return self._formula

    def contains(self, element):
        return any(a.element == element for a in self.atoms)

    def estimate_half_life(self):
        if not self.bonds:
            return 500.0
        avg_strength = sum(b.strength for b in self.bonds) / len(self.bonds)
        return max(100.0, len(self.bonds) * avg_strength * 5000.0 + 500.0)

    def _adjacency(self):
        adj = [[] for _ in self.atoms]
        for b in self.bonds:
            adj[b.atom_a].append(b.atom_b)
            adj[b.atom_b].append(b.atom_a)
        return adj

    def chain_length(self):
        if self._chain_length >= 0:
            return self._chain_length
        if not self.atoms:
            self._chain_length = 0
            return 0
        adj = self._adjacency()
        longest = 1
        for start in range(len(self.atoms)):
            visited = {start}
            stack = [(start, 1)]
            while stack:
                node, depth = stack.pop()
                if depth > longest:
                    longest = depth
                for nb in adj[node]:
                    if nb not in visited:
                        visited.add(nb)
                        stack.append((nb, depth + 1))
        self._chain_length = longest
        return longest

    # ── Structural predicates ──

    def has_cn_bond(self):
        for b in self.bonds:
            pair = (self.atoms[b.atom_a].element, self.atoms[b.atom_b].element)
            if pair == (C, N) or pair == (N, C):
                return True
        return False

    def has_long_carbon_chain(self, length=4):
        if len(self.atoms) < length:
            return False
        adj = self._adjacency()
        atoms = self.atoms

        def walk(node, visited, depth):
            if depth >= length:
                return True
            for nb in adj[node]:
                if nb not in visited and atoms[nb].element == C:
                    visited.add(nb)
                    if walk(nb, visited, depth + 1):
                        return True
                    visited.discard(nb)
            return False

        for i, atom in enumerate(atoms):
            if atom.element == C and walk(i, {i}, 1):
                return True
        return False

    def has_phosphorus_ring(self):
        p_atoms = [i for i, a in enumerate(self.atoms) if a.element == P]
        if not p_atoms:
            return False
        adj = self._adjacency()
        for start in p_atoms:
            parent = {start: -1}
            queue = deque([start])
            while queue:
                node = queue.popleft()
                for nb in adj[node]:
                    if nb not in parent:
                        parent[nb] = node
                        queue.append(nb)
                    elif parent[node] != nb:
                        return True
        return False

    def infer_role(self):
        if self.catalytic_sites:
            return "catalyst"
        if self.has_long_carbon_chain() and self.polarity > 0.3:
            return "membrane"
        if self.has_phosphorus_ring() or (self.has_cn_bond() and self.chain_length() >= 4):
            return "genome_segment"
        if len(self.atoms) <= 2 and self.energy > 0:
            return "food"
        if self.polarity > 0.5 and self.contains(S):
            return "toxin"
        if len(self.atoms) <= 1:
            return "waste"
        return "unknown"

    # ── Mutation ──

    def add_bond(self, a, b, strength, bond_type="covalent", order=1):
        assert 0 <= a < len(self.atoms) and 0 <= b < len(self.atoms), "bond index out of range"
        self.bonds.append(Bond(a, b, strength, bond_type, order))
        self.atoms[a].bond_count += order
        self.atoms[b].bond_count += order
        self._bonds_changed()

    def break_bond(self, index=-1):
        """Remove one bond (the last by default). Returns the removed bond or None."""
        if not self.bonds:
            return None
        bond = self.bonds.pop(index)
        self.atoms[bond.atom_a].bond_count = max(0, self.atoms[bond.atom_a].bond_count - bond.order)
        self.atoms[bond.atom_b].bond_count = max(0, self.atoms[bond.atom_b].bond_count - bond.order)
        self._bonds_changed()
        return bond

    def _bonds_changed(self):
        self._chain_length = -1
        self.half_life = self.estimate_half_life()

    def tick(self):
        self.age += 1
        self.x += self.vx
        self.y += self.vy

    def copy_structure(self):
        """Fresh atoms and bonds equal to this molecule's."""
        atoms = [Atom(a.element, a.bond_count) for a in self.atoms]
        bonds = [Bond(b.atom_a, b.atom_b, b.strength, b.type, b.order) for b in self.bonds]
        return atoms, bonds


def first_free_site(atoms):
    for i, atom in enumerate(atoms):
        if atom.free_sites() > 0:
            return i
    return -1
