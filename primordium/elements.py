"""
Primordium — Elements
=====================
Fixed six-element table used by the chemistry layer.
"""

from collections import namedtuple


ElementProperties = namedtuple(
    "ElementProperties", ["symbol", "bond_sites", "electronegativity", "mass", "abundance"])

H = "H"
C = "C"
N = "N"
O = "O"
P = "P"
S = "S"

ELEMENTS = (H, C, N, O, P, S)

ELEMENT_PROPERTIES = {
    H: ElementProperties(H, 1, 0.21, 1.0, 0.40),
    C: ElementProperties(C, 4, 0.55, 12.0, 0.15),
    N: ElementProperties(N, 3, 0.65, 14.0, 0.10),
    O: ElementProperties(O, 2, 0.75, 16.0, 0.20),
    P: ElementProperties(P, 5, 0.45, 31.0, 0.05),
    S: ElementProperties(S, 2, 0.50, 32.0, 0.10),
}

# Hill-like ordering used for formulas
FORMULA_ORDER = (C, H, N, O, P, S)


def bond_sites(element):
    return ELEMENT_PROPERTIES[element].bond_sites


def electronegativity(element):
    return ELEMENT_PROPERTIES[element].electronegativity


def atomic_mass(element):
    return ELEMENT_PROPERTIES[element].mass
