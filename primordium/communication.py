"""
Primordium — Communication
==========================
Signals broadcast by organisms. An organism whose SIGNAL output is strong
enough drops a SignalEvent at its position; neighbours carrying a signal
sensor hear the loudest event within their sensor range.

Events are indexed once per tick, so a signal is heard from the tick after
it was made. They fade after `lifetime` ticks, and past MAX_SIGNALS the log
keeps only the newest KEEP_SIGNALS.
"""

import itertools
import math
from collections import Counter, namedtuple

from .organism import N_ACTUATORS, SIGNAL, normalize
from .spatial_hash import SpatialHash


MAX_SIGNALS = 500
KEEP_SIGNALS = 250

SignalEvent = namedtuple("SignalEvent", [
    "id", "emitter_id", "signal_type", "intensity", "x", "y", "tick"])


class CommunicationSystem:
    def __init__(self, threshold=0.3, lifetime=50, cell_size=16.0):
        self.threshold = threshold
        self.lifetime = lifetime
        self.signals = []
        self.index = SpatialHash(cell_size)
        # (signal type, receiver's strongest actuator) -> times seen
        self.protocols = Counter()
        self.total_emitted = 0
        self.total_heard = 0
        self._ids = itertools.count(1)

    def __len__(self):
        return len(self.signals)

    def begin_tick(self, tick):
        """Drop faded events and index the rest for this tick's listeners."""
        horizon = tick - self.lifetime
        self.signals = [s for s in self.signals if s.tick > horizon]
        self.index.clear()
        for s in self.signals:
            self.index.insert(s)

    def emit(self, org, tick):
        """Log a signal from `org`. Returns the event, or None when nothing was sent."""
        strength = abs(org.actuator_outputs[SIGNAL])
        kind = org.phenotype.signal_type
        if strength < self.threshold or kind <= 0:
            return None
        event = SignalEvent(next(self._ids), org.id, kind, strength, org.x, org.y, tick)
        self.signals.append(event)
        self.total_emitted += 1
        if len(self.signals) > MAX_SIGNALS:
            for old in self.signals[:-KEEP_SIGNALS]:
                self.index.remove(old)
            self.signals = self.signals[-KEEP_SIGNALS:]
        return event

    def signals_near(self, x, y, radius, exclude=None):
        return [s for s in self.index.query(x, y, radius) if s.emitter_id != exclude]

    def hear(self, org, radius):
        """Loudest event `org` can hear and its reading (level, dx, dy), or (None, None).

        Level is intensity times signal type, attenuated by distance.
        """
        best = None
        best_level = 0.0
        for s in self.signals_near(org.x, org.y, radius, exclude=org.id):
            level = s.intensity * s.signal_type / (1.0 + math.hypot(s.x - org.x, s.y - org.y))
            if best is None or level > best_level:
                best, best_level = s, level
        if best is None:
            return None, None
        self.total_heard += 1
        dx, dy = normalize(best.x - org.x, best.y - org.y)
        return best, (best_level, dx, dy)

    def record_response(self, event, outputs):
        """Count which actuator a listener drove hardest after hearing `event`."""
        strongest = max(range(N_ACTUATORS), key=lambda i: abs(outputs[i]))
        self.protocols[(round(event.signal_type, 1), strongest)] += 1

    def summary(self):
        return {
            "active": len(self.signals),
            "emitted": self.total_emitted,
            "heard": self.total_heard,
            "protocols": len(self.protocols),
        }
