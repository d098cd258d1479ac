"""
Primordium — Information Polymers and Replicators
=================================================
A polymer is a sequence over a 4-symbol alphabet with a copying fidelity.
Copying never touches the parent; the copy may carry point mutations,
insertions, deletions and duplications, and warm conditions erode fidelity.
"""

ALPHABET = 4

# Expected mutations per copy beyond which information is lost
ERROR_THRESHOLD = 1.0

MIN_FIDELITY = 0.5
MAX_FIDELITY = 0.999


class InformationPolymer:
    def __init__(self, sequence, fidelity=0.9):
        self.sequence = tuple(sequence)
        self.fidelity = fidelity

    def __len__(self):
        return len(self.sequence)

    def __repr__(self):
        return f"InformationPolymer(len={len(self.sequence)}, fidelity={self.fidelity:.3f})"

    @property
    def error_load(self):
        return (1.0 - self.fidelity) * len(self.sequence)

    @property
    def in_error_catastrophe(self):
        return self.error_load > ERROR_THRESHOLD

    def copy(self, rng, temperature=0.5):
        thermal_loss = max(0.0, temperature - 0.5) * 0.2
        fidelity = self.fidelity - thermal_loss
        seq = [rng.int(0, ALPHABET) if rng.next() > fidelity else base for base in self.sequence]

        indel = (1.0 - fidelity) * 0.5
        if rng.next() < indel:
            seq.insert(rng.int(0, len(seq) + 1), rng.int(0, ALPHABET))
        if len(seq) > 1 and rng.next() < indel:
            del seq[rng.int(0, len(seq))]
        if seq and rng.next() < indel:
            # Tandem duplication of a short stretch
            start = rng.int(0, len(seq))
            end = min(len(seq), start + 1 + rng.int(0, 4))
            seq[end:end] = seq[start:end]

        inherited = min(MAX_FIDELITY, max(MIN_FIDELITY, self.fidelity - thermal_loss * 0.1))
        return InformationPolymer(seq, inherited)

    def similarity(self, other):
        shortest = min(len(self), len(other))
        if shortest == 0:
            return 0.0
        matches = sum(1 for i in range(shortest) if self.sequence[i] == other.sequence[i])
        return matches / max(len(self), len(other))

    @classmethod
    def create_random(cls, length, rng):
        seq = [rng.int(0, ALPHABET) for _ in range(length)]
        return cls(seq, 0.85 + rng.next() * 0.1)


class Replicator:
    def __init__(self, polymer, speed=100.0):
        self.polymer = polymer
        self.speed = speed
        self.progress = 0
        self.copy_count = 0

    @property
    def error_rate(self):
        return 1.0 - self.polymer.fidelity

    @property
    def energy_cost(self):
        return len(self.polymer) * 0.01

    def tick(self, available_energy, rng, temperature=0.5):
        """Advance one tick. Returns (child or None, energy spent)."""
        if available_energy < self.energy_cost:
            return None, 0.0
        self.progress += 1
        if self.progress < self.speed:
            return None, 0.0
        self.progress = 0
        self.copy_count += 1
        polymer = self.polymer.copy(rng, temperature)
        speed = max(10.0, self.speed + rng.gaussian(0.0, 5.0))
        if polymer.in_error_catastrophe:
            return None, self.energy_cost
        return Replicator(polymer, speed), self.energy_cost
