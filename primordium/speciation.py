"""
Primordium — Speciation
=======================
Soft clustering by genetic distance. Each pass puts every organism in the
first species whose representative is within the threshold, or founds a new
species. Empty species are dropped and representatives are redrawn from the
remaining members.
"""


class Species:
    def __init__(self, species_id, representative):
        self.id = species_id
        self.representative = representative
        self.members = [representative]
        self.age = 0

    def __repr__(self):
        return f"Species(id={self.id}, members={len(self.members)}, age={self.age})"

    @property
    def metabolism_type(self):
        return self.members[0].phenotype.metabolism_type if self.members else None


class SpeciationSystem:
    def __init__(self, threshold=5.0, c1=1.0, c2=1.0, c3=0.4):
        self.threshold = threshold
        self.coefficients = (c1, c2, c3)
        self.species = []
        self._next_id = 1

    def assign_species(self, organisms, rng):
        for sp in self.species:
            sp.members = []

        c1, c2, c3 = self.coefficients
        for org in organisms:
            for sp in self.species:
                if org.genome.distance_to(sp.representative.genome, c1, c2, c3) < self.threshold:
                    sp.members.append(org)
                    org.species = sp.id
                    break
            else:
                sp = Species(self._next_id, org)
                self._next_id += 1
                self.species.append(sp)
                org.species = sp.id

        self.species = [sp for sp in self.species if sp.members]
        for sp in self.species:
            sp.representative = rng.pick(sp.members)
            sp.age += 1

    @property
    def species_count(self):
        return sum(1 for sp in self.species if sp.members)

    def get(self, species_id):
        for sp in self.species:
            if sp.id == species_id:
                return sp
        return None

    def species_list(self):
        return [{"id": sp.id, "population": len(sp.members), "age": sp.age} for sp in self.species]
