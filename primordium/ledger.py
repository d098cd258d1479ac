"""
Primordium — Energy Ledger
==========================
Books every energy change that is not a transfer between two entities.
Injections come from outside the living system (sources, lightning, storms,
light harvested by organisms); dissipations leave it (upkeep, movement, heat,
deaths handed to the resource cycle).

For any span of ticks, `total_energy - injected + dissipated` is constant.
"""


class EnergyLedger:
    def __init__(self):
        self.injected = 0.0
        self.dissipated = 0.0
        self.injections = {}
        self.dissipations = {}

    def inject(self, channel, amount):
        if amount == 0:
            return
        self.injected += amount
        self.injections[channel] = self.injections.get(channel, 0.0) + amount

    def dissipate(self, channel, amount):
        # Negative amounts are allowed: an entity removed while in deficit
        if amount == 0:
            return
        self.dissipated += amount
        self.dissipations[channel] = self.dissipations.get(channel, 0.0) + amount

    def record_delta(self, channel, delta):
        """Book a signed change: gains as injection, losses as dissipation."""
        if delta > 0:
            self.inject(channel, delta)
        elif delta < 0:
            self.dissipate(channel, -delta)

    def balance(self, total_energy):
        return total_energy - self.injected + self.dissipated

    def summary(self):
        return {
            "injected": round(self.injected, 6),
            "dissipated": round(self.dissipated, 6),
            "injections": {k: round(v, 6) for k, v in sorted(self.injections.items())},
            "dissipations": {k: round(v, 6) for k, v in sorted(self.dissipations.items())},
        }
