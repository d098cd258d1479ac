"""
Primordium — Coevolution
========================
Predator-prey arms races read off the food web: established links become
tracked pairs whose mean offensive and defensive trait scores are compared
pass to pass.
"""

from collections import namedtuple


MAX_PAIRS = 200
MIN_PREDATION = 2
STALE_AFTER = 5000

ArmsRaceMetrics = namedtuple("ArmsRaceMetrics", [
    "predator_pressure", "prey_defense", "predator_offense", "escalation_rate"])

NO_ARMS_RACE = ArmsRaceMetrics(0.0, 0.0, 0.0, 0.0)


def _clamp(v, lo, hi):
    return min(hi, max(lo, v))


def offensive_score(org):
    p = org.phenotype
    return _clamp(p.mass * 0.3 + p.max_speed * 0.4 + p.toxicity * 0.3, 0.0, 2.0)


def defensive_score(org):
    p = org.phenotype
    return _clamp(p.shell_thickness * 0.3 + p.max_speed * 0.3 + p.camouflage * 0.2
                  + p.toxicity * 0.2, 0.0, 2.0)


class CoevolutionaryPair:
    __slots__ = ("predator_species", "prey_species", "interactions",
                 "predator_offense", "prey_defense", "last_update")

    def __init__(self, predator_species, prey_species, tick):
        self.predator_species = predator_species
        self.prey_species = prey_species
        self.interactions = 0
        self.predator_offense = 0.0
        self.prey_defense = 0.0
        self.last_update = tick


class CoevolutionSystem:
    def __init__(self):
        self.pairs = {}
        self.metrics = NO_ARMS_RACE
        self._previous = None

    def __len__(self):
        return len(self.pairs)

    def update(self, organisms, food_web, tick):
        by_species = {}
        for org in organisms:
            if org.alive:
                by_species.setdefault(org.species, []).append(org)

        for key, strength in food_web.links.items():
            if strength < MIN_PREDATION:
                continue
            pair = self.pairs.get(key)
            if pair is None:
                pair = self.pairs[key] = CoevolutionaryPair(key[0], key[1], tick)
            pair.interactions = strength
            pair.last_update = tick
            predators = by_species.get(key[0], ())
            prey = by_species.get(key[1], ())
            if predators:
                pair.predator_offense = sum(offensive_score(o) for o in predators) / len(predators)
            if prey:
                pair.prey_defense = sum(defensive_score(o) for o in prey) / len(prey)

        for key in [k for k, p in self.pairs.items() if tick - p.last_update >= STALE_AFTER]:
            del self.pairs[key]
        if len(self.pairs) > MAX_PAIRS:
            ranked = sorted(self.pairs.items(), key=lambda kv: -kv[1].interactions)[:MAX_PAIRS]
            self.pairs = dict(ranked)

        self.metrics = self._compute_metrics(organisms)
        self._previous = self.metrics
        return self.metrics

    def _compute_metrics(self, organisms):
        if not organisms or not self.pairs:
            return NO_ARMS_RACE
        pairs = list(self.pairs.values())
        n = len(pairs)
        offense = sum(p.predator_offense for p in pairs) / n
        defense = sum(p.prey_defense for p in pairs) / n
        pressure = sum(p.interactions for p in pairs) / n
        escalation = 0.0
        if self._previous is not None:
            escalation = (abs(offense - self._previous.predator_offense)
                          + abs(defense - self._previous.prey_defense))
        return ArmsRaceMetrics(pressure, defense, offense, escalation)

    def apply_pressure(self, organisms):
        """Small energy bonus for defended prey and capable predators. Returns the total."""
        prey_species = {p.prey_species for p in self.pairs.values()}
        predator_species = {p.predator_species for p in self.pairs.values()}
        total = 0.0
        for org in organisms:
            if not org.alive:
                continue
            bonus = 0.0
            if org.species in prey_species:
                bonus += defensive_score(org) * 0.001
            if org.species in predator_species:
                bonus += offensive_score(org) * 0.0005
            org.energy += bonus
            total += bonus
        return total
