"""
Tests for catalytic motifs and the motif cache
"""

import pytest

from primordium.catalysis import Catalysis
from primordium.config import Config
from primordium.elements import C, H, N, O, P, S
from primordium.molecule import Atom, Bond, CatalyticSite, Molecule
from primordium.reactions import ReactionSystem


@pytest.fixture
def catalysis():
    return Catalysis()


@pytest.fixture
def rules():
    system = ReactionSystem(Config())
    return {r.name: r for r in system.rules}


def motif_names(catalysis, mol):
    return [m.name for m in catalysis.detect_motifs(mol)]


class TestMotifs:
    def test_detection(self, catalysis, make_chain):
        assert motif_names(catalysis, make_chain([N, N])) == ["NN_motif"]
        assert motif_names(catalysis, make_chain([H, S])) == ["S_redox_motif"]
        assert motif_names(catalysis, make_chain([P, O])) == ["P_phosphoryl_motif"]
        assert motif_names(catalysis, make_chain([C, C, C, C])) == ["long_chain_motif"]
        assert motif_names(catalysis, Molecule.single(H, 0, 0)) == []

    def test_carboxyl(self, catalysis):
        atoms = [Atom(C), Atom(O), Atom(O)]
        mol = Molecule(atoms, [Bond(0, 1, 0.8), Bond(0, 2, 0.8)])
        assert "COO_motif" in motif_names(catalysis, mol)

    def test_cache_until_invalidated(self, catalysis, make_chain):
        mol = make_chain([N, N])
        assert motif_names(catalysis, mol) == ["NN_motif"]
        mol.break_bond()
        # Still cached
        assert motif_names(catalysis, mol) == ["NN_motif"]
        catalysis.invalidate(mol.id)
        assert motif_names(catalysis, mol) == []

    def test_forget_and_retain(self, catalysis, make_chain):
        mols = [make_chain([C, C]) for _ in range(4)]
        for m in mols:
            catalysis.detect_motifs(m)
        assert catalysis.cache_size() == 4
        catalysis.forget([mols[0].id])
        assert catalysis.cache_size() == 3
        catalysis.retain({mols[1].id})
        assert catalysis.cache_size() == 1


class TestCatalyticEffect:
    def test_motif_bonus(self, catalysis, rules, make_chain):
        nn = make_chain([N, N])
        assert catalysis.calculate_catalytic_effect(nn, rules["synthesis"]) == pytest.approx(1.0)
        assert catalysis.calculate_catalytic_effect(nn, rules["hydrolysis"]) == 0.0

    def test_site_and_motif(self, catalysis, rules, make_chain):
        nn = make_chain([N, N])
        nn.catalytic_sites.append(CatalyticSite("synthesis", 0.5))
        # 5 * .5 * .5 from the site plus 5 * .2 from the motif
        assert catalysis.calculate_catalytic_effect(nn, rules["synthesis"]) == pytest.approx(2.25)

    def test_find_catalyst(self, catalysis, rules, make_chain):
        plain = Molecule.single(H, 0, 0)
        nn = make_chain([N, N])
        assert catalysis.find_catalyst([plain, nn], rules["synthesis"]) is nn
        assert catalysis.find_catalyst([plain], rules["synthesis"]) is None
        assert catalysis.find_catalyst([], rules["synthesis"]) is None

    def test_assign_sites(self, catalysis, make_chain):
        mol = make_chain([N, N, C, C, C])
        count = catalysis.assign_motifs_as_catalytic_sites(mol)
        assert count == 2
        assert {s.reaction for s in mol.catalytic_sites} == {"synthesis", "autocatalytic"}
        assert mol.role == "catalyst"
        # Second call adds nothing new
        catalysis.assign_motifs_as_catalytic_sites(mol)
        assert len(mol.catalytic_sites) == 2
