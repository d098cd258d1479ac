"""
Primordium — Symbiosis
======================
Bonds between organisms of different species that keep touching. The bond
type follows metabolic complementarity; once a bond has persisted long
enough it moves a little energy every pass.
"""


MUTUALISM = "mutualism"
PARASITISM = "parasitism"
COMMENSALISM = "commensalism"

PROXIMITY = 3.0
MIN_UPDATES = 50
MAX_BONDS = 500

AUTOTROPHS = ("photosynthesis", "chemosynthesis", "fermentation")


class SymbioticBond:
    __slots__ = ("host_id", "symbiont_id", "type", "strength", "updates",
                 "host_species", "symbiont_species")

    def __init__(self, host_id, symbiont_id, kind, host_species, symbiont_species):
        self.host_id = host_id
        self.symbiont_id = symbiont_id
        self.type = kind
        self.strength = 0.01
        self.updates = 0
        self.host_species = host_species
        self.symbiont_species = symbiont_species


def classify(a, b):
    met_a = a.phenotype.metabolism_type
    met_b = b.phenotype.metabolism_type
    if met_a in AUTOTROPHS and met_b in AUTOTROPHS and met_a != met_b:
        return MUTUALISM
    if "heterotrophy" in (met_a, met_b):
        if a.phenotype.cooperation_marker > 0.5 and b.phenotype.cooperation_marker > 0.5:
            return MUTUALISM
        return PARASITISM
    return COMMENSALISM


class SymbiosisSystem:
    def __init__(self):
        self.bonds = []

    def __len__(self):
        return len(self.bonds)

    def update(self, organisms, get_nearby):
        for bond in self.bonds:
            bond.updates += 1
            bond.strength = min(1.0, bond.strength + 0.001)

        alive = {o.id for o in organisms if o.alive}
        self.bonds = [b for b in self.bonds if b.host_id in alive and b.symbiont_id in alive]
        bonded = {(b.host_id, b.symbiont_id) for b in self.bonds}

        for org in organisms:
            if not org.alive:
                continue
            for other in get_nearby(org.x, org.y, PROXIMITY):
                if other.id == org.id or not other.alive or other.species == org.species:
                    continue
                host, symbiont = (org, other) if org.id < other.id else (other, org)
                key = (host.id, symbiont.id)
                if key in bonded:
                    continue
                reach = org.phenotype.body_radius + other.phenotype.body_radius + 1.0
                if (org.x - other.x) ** 2 + (org.y - other.y) ** 2 > reach * reach:
                    continue
                self.bonds.append(SymbioticBond(host.id, symbiont.id, classify(org, other),
                                                host.species, symbiont.species))
                bonded.add(key)

        if len(self.bonds) > MAX_BONDS:
            self.bonds.sort(key=lambda b: -b.strength)
            del self.bonds[MAX_BONDS:]

    def apply_effects(self, organisms_by_id):
        """Move energy along established bonds. Returns (gained, lost) in total."""
        gained = 0.0
        lost = 0.0
        for bond in self.bonds:
            if bond.updates < MIN_UPDATES:
                continue
            host = organisms_by_id.get(bond.host_id)
            symbiont = organisms_by_id.get(bond.symbiont_id)
            if host is None or symbiont is None or not host.alive or not symbiont.alive:
                continue
            effect = bond.strength * 0.002
            if bond.type == MUTUALISM:
                host.energy += effect
                symbiont.energy += effect
                gained += 2 * effect
            elif bond.type == PARASITISM:
                # The symbiont keeps 70 % of what it drains
                host.energy -= effect
                symbiont.energy += effect * 0.7
                lost += effect * 0.3
            else:
                symbiont.energy += effect * 0.5
                gained += effect * 0.5
        return gained, lost

    def bonds_by_type(self):
        counts = {MUTUALISM: 0, PARASITISM: 0, COMMENSALISM: 0}
        for bond in self.bonds:
            counts[bond.type] += 1
        return counts

    def bonds_for(self, organism_id):
        return [b for b in self.bonds if organism_id in (b.host_id, b.symbiont_id)]
