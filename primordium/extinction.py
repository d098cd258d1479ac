"""
Primordium — Mass extinctions
=============================
At most one event is active. While it runs, each organism dies with a
probability that falls linearly from the event's severity to zero over its
duration. Records are written when an event ends.
"""

from collections import namedtuple


VOLCANIC = "volcanic"
ASTEROID = "asteroid"
OXYGEN_CRISIS = "oxygen_crisis"

DURATIONS = {VOLCANIC: 2000, ASTEROID: 5000, OXYGEN_CRISIS: 10000}
SEVERITIES = {VOLCANIC: 0.3, ASTEROID: 0.7, OXYGEN_CRISIS: 0.5}

ActiveEvent = namedtuple("ActiveEvent", [
    "type", "start_tick", "duration", "severity", "population_before", "species_before"])

ExtinctionRecord = namedtuple("ExtinctionRecord", [
    "type", "tick", "species_lost", "population_before", "population_after", "duration"])


class ExtinctionEventSystem:
    def __init__(self):
        self.active = None
        self.records = []

    def check_for_event(self, rng, volcanic_rate, asteroid_rate, oxygen_level, oxygen_threshold):
        """Event type to start this tick, or None."""
        if self.active is not None:
            return None
        if rng.next() < volcanic_rate:
            return VOLCANIC
        if rng.next() < asteroid_rate:
            return ASTEROID
        if oxygen_level > oxygen_threshold:
            return OXYGEN_CRISIS
        return None

    def start_event(self, kind, tick, population=0, species=0):
        self.active = ActiveEvent(kind, tick, DURATIONS[kind], SEVERITIES[kind], population, species)
        return self.active

    def kill_probability(self, tick):
        if self.active is None:
            return 0.0
        elapsed = tick - self.active.start_tick
        if elapsed > self.active.duration:
            return 0.0
        return self.active.severity * (1.0 - elapsed / self.active.duration) * 0.01

    def apply_effects(self, organisms, tick, rng, species_count=0):
        """Kill organisms for this tick; closes the event once it has run its course."""
        ev = self.active
        if ev is None:
            return 0
        if tick - ev.start_tick > ev.duration:
            alive = sum(1 for o in organisms if o.alive)
            self.records.append(ExtinctionRecord(
                ev.type, ev.start_tick, max(0, ev.species_before - species_count),
                ev.population_before, alive, ev.duration))
            self.active = None
            return 0

        p = self.kill_probability(tick)
        killed = 0
        for org in organisms:
            if org.alive and rng.next() < p:
                org.die()
                killed += 1
        return killed
