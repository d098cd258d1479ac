"""
Primordium — Catalysis
======================
Structural motifs that lower activation energy for one reaction class each.
Motif detection is cached per molecule id; the chemistry phase must call
`invalidate(mol.id)` whenever that molecule's bonds change.
"""

from collections import namedtuple

from .elements import N, O, P, S, C
from .molecule import CatalyticSite
from .reactions import matches_pattern


Motif = namedtuple("Motif", ["name", "test", "reaction", "bonus"])


def _nn_bond(mol):
    return any(mol.atoms[b.atom_a].element == N and mol.atoms[b.atom_b].element == N
               for b in mol.bonds)


def _carboxyl(mol):
    # A carbon bonded to at least two oxygens
    o_neighbours = {}
    for b in mol.bonds:
        ea = mol.atoms[b.atom_a].element
        eb = mol.atoms[b.atom_b].element
        if ea == C and eb == O:
            o_neighbours[b.atom_a] = o_neighbours.get(b.atom_a, 0) + 1
        elif eb == C and ea == O:
            o_neighbours[b.atom_b] = o_neighbours.get(b.atom_b, 0) + 1
    return any(n >= 2 for n in o_neighbours.values())


MOTIFS = (
    Motif("NN_motif", _nn_bond, "synthesis", 0.2),
    Motif("COO_motif", _carboxyl, "hydrolysis", 0.25),
    Motif("S_redox_motif", lambda m: m.contains(S), "energy_transfer", 0.3),
    Motif("P_phosphoryl_motif", lambda m: m.contains(P) and m.contains(O), "polymerization", 0.35),
    Motif("long_chain_motif", lambda m: m.chain_length() >= 4, "autocatalytic", 0.2),
)


class Catalysis:
    def __init__(self):
        self._cache = {}

    def detect_motifs(self, mol):
        motifs = self._cache.get(mol.id)
        if motifs is None:
            motifs = tuple(m for m in MOTIFS if m.test(mol))
            self._cache[mol.id] = motifs
        return motifs

    def invalidate(self, mol_id):
        self._cache.pop(mol_id, None)

    def forget(self, mol_ids):
        for mol_id in mol_ids:
            self._cache.pop(mol_id, None)

    def retain(self, mol_ids):
        """Drop cached entries for molecules that no longer exist."""
        for mol_id in [k for k in self._cache if k not in mol_ids]:
            del self._cache[mol_id]

    def cache_size(self):
        return len(self._cache)

    def catalyses(self, mol, rule):
        if any(site.reaction == rule.name for site in mol.catalytic_sites):
            return True
        if any(m.reaction == rule.name for m in self.detect_motifs(mol)):
            return True
        return rule.catalyst_pattern is not None and matches_pattern(mol, rule.catalyst_pattern)

    def find_catalyst(self, pool, rule):
        for mol in pool:
            if self.catalyses(mol, rule):
                return mol
        return None

    def calculate_catalytic_effect(self, catalyst, rule):
        """Activation-energy reduction the catalyst gives `rule`."""
        best_site = 0.0
        for site in catalyst.catalytic_sites:
            if site.reaction == rule.name and site.efficiency > best_site:
                best_site = site.efficiency
        reduction = rule.activation_energy * rule.catalytic_reduction * best_site
        for motif in self.detect_motifs(catalyst):
            if motif.reaction == rule.name:
                reduction += motif.bonus * rule.activation_energy
        return reduction

    def assign_motifs_as_catalytic_sites(self, mol):
        motifs = self.detect_motifs(mol)
        for motif in motifs:
            if not any(s.reaction == motif.reaction for s in mol.catalytic_sites):
                mol.catalytic_sites.append(CatalyticSite(motif.reaction, motif.bonus))
        if motifs:
            mol.role = "catalyst"
        return len(motifs)
