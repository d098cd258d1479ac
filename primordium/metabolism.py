"""
Primordium — Proto-metabolism
=============================
Cyclic pathways: while every input formula is present inside the cell a
pathway advances one step per tick, and on completing its cycle it yields
`net_energy * efficiency` once.
"""

from dataclasses import dataclass, field, replace

from .ids import new_id


MAX_PATHWAYS = 4


@dataclass
class MetabolicPathway:
    inputs: tuple
    outputs: tuple
    net_energy: float
    efficiency: float
    cycle_length: int
    current_cycle: int = 0
    id: int = field(default_factory=new_id)

    @property
    def rate(self):
        return self.net_energy * self.efficiency / self.cycle_length


class ProtoMetabolism:
    def __init__(self, pathways=()):
        self.pathways = list(pathways)
        self.total_energy_produced = 0.0

    def __len__(self):
        return len(self.pathways)

    def add_pathway(self, pathway):
        if len(self.pathways) >= MAX_PATHWAYS:
            return False
        self.pathways.append(pathway)
        return True

    def tick(self, available):
        produced = 0.0
        for pathway in self.pathways:
            if not all(i in available for i in pathway.inputs):
                continue
            pathway.current_cycle += 1
            if pathway.current_cycle >= pathway.cycle_length:
                pathway.current_cycle = 0
                produced += pathway.net_energy * pathway.efficiency
        self.total_energy_produced += produced
        return produced

    @property
    def metabolism_rate(self):
        return sum(p.rate for p in self.pathways)

    def copy(self):
        """Same pathways with their cycles reset."""
        return ProtoMetabolism(replace(p, current_cycle=0, id=new_id()) for p in self.pathways)


def random_pathway(formulas, rng):
    """A new pathway fed by two distinct formulas, or None if fewer are present."""
    pool = sorted(formulas)
    if len(pool) < 2:
        return None
    first = rng.pick(pool)
    second = rng.pick([f for f in pool if f != first])
    return MetabolicPathway(
        inputs=(first, second),
        outputs=(),
        net_energy=rng.range(0.5, 2.0),
        efficiency=rng.range(0.3, 0.9),
        cycle_length=rng.int(20, 100),
    )
