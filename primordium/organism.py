"""
Primordium — Organisms
======================
A genome-bearing agent. Each tick runs, in order:
    sense -> think -> act -> metabolize -> tick_age

Methods that change energy return the amount so the caller can book it.
Plasticity modifiers live on the organism for one tick and are reset after.
"""

import math
from collections import namedtuple

from . import neat
from .ids import new_id


# Actuator output indices
MOVE_X = 0
MOVE_Y = 1
MOVE_SPEED = 2
INGESTION = 3
SECRETION = 4
DIVISION = 5
SIGNAL = 6
ADHESION = 7

N_ACTUATORS = 8

# Everything an organism perceives this tick. `nearest` is (distance, dx, dy) or None;
# `signal` is the loudest heard signal as (level, dx, dy) or None.
SensorContext = namedtuple("SensorContext", [
    "chemical_gradient", "light_intensity", "light_direction", "nearest", "touch", "signal",
], defaults=(None,))


def normalize(x, y):
    length = math.hypot(x, y)
    if length == 0 or not math.isfinite(length):
        return 0.0, 0.0
    return x / length, y / length


class Organism:
    def __init__(self, genome, x, y, generation=0, energy=None):
        self.id = new_id()
        self.genome = genome
        self.phenotype = genome.express()
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.orientation = 0.0
        self.energy = self.phenotype.energy_capacity * 0.7 if energy is None else energy
        self.integrity = 1.0
        self.age = 0
        self.generation = generation
        self.parent_id = None
        self.species = 0
        self.birth_tick = 0

        self.sensor_readings = []
        self.actuator_outputs = [0.0] * N_ACTUATORS

        self.alive = True
        self.kill_count = 0
        self.offspring = 0

        self.reset_modifiers()

    def __repr__(self):
        return (f"Organism(id={self.id}, species={self.species}, gen={self.generation}, "
                f"energy={self.energy:.3f}, alive={self.alive})")

    def reset_modifiers(self):
        self.efficiency_mod = 1.0
        self.speed_mod = 1.0
        self.shell_mod = 0.0
        self.sensitivity_mod = 1.0

    @property
    def metabolism_type(self):
        return self.phenotype.metabolism_type

    @property
    def shell(self):
        return self.phenotype.shell_thickness + self.shell_mod

    # ── Lifecycle ──

    def sense(self, ctx):
        readings = []
        gx, gy = ctx.chemical_gradient
        lx, ly = ctx.light_direction
        capacity = self.phenotype.energy_capacity
        for sensor in self.phenotype.sensors:
            s = sensor.sensitivity * self.sensitivity_mod
            kind = sensor.type
            if kind == "chemical":
                readings += (gx * s, gy * s)
            elif kind == "light":
                readings += (ctx.light_intensity * s, lx * s, ly * s)
            elif kind == "touch":
                readings.append(1.0 if ctx.touch else 0.0)
            elif kind == "proximity":
                if ctx.nearest is not None and sensor.range > 0:
                    dist, dx, dy = ctx.nearest
                    readings += (1.0 - min(1.0, max(0.0, dist / sensor.range)), dx, dy)
                else:
                    readings += (0.0, 0.0, 0.0)
            elif kind == "internal":
                readings += (self.energy / capacity if capacity > 0 else 0.0, self.integrity)
            elif kind == "signal":
                if ctx.signal is not None:
                    level, dx, dy = ctx.signal
                    readings += (level * s, dx, dy)
                else:
                    readings += (0.0, 0.0, 0.0)
        readings += (math.cos(self.orientation), math.sin(self.orientation))
        self.sensor_readings = readings

    def think(self):
        n_inputs = sum(1 for n in self.genome.neural.nodes if n.kind == neat.INPUT)
        readings = self.sensor_readings[:n_inputs]
        readings += [0.0] * (n_inputs - len(readings))
        self.sensor_readings = readings

        outputs = neat.forward(self.genome.neural, readings)
        outputs += [0.0] * (N_ACTUATORS - len(outputs))
        self.actuator_outputs = outputs

    def act(self, world_size, movement_cost=0.005):
        """Move per the actuator outputs. Returns the energy spent."""
        out = self.actuator_outputs
        dx, dy = normalize(out[MOVE_X], out[MOVE_Y])
        speed = abs(out[MOVE_SPEED]) * self.phenotype.max_speed * self.speed_mod
        self.vx = dx * speed
        self.vy = dy * speed
        self.x = (self.x + self.vx) % world_size
        self.y = (self.y + self.vy) % world_size

        cost = speed * movement_cost
        self.energy -= cost
        if speed > 0.01:
            self.orientation = math.atan2(self.vy, self.vx)
        return cost

    def metabolize(self, env_energy, light):
        """Harvest energy for this metabolism type, capped at capacity. Returns the net change."""
        efficiency = self.phenotype.metabolic_efficiency * self.efficiency_mod
        kind = self.phenotype.metabolism_type
        if kind == "chemosynthesis":
            gain = env_energy * efficiency * 0.1
        elif kind == "photosynthesis":
            gain = light * efficiency * 0.15
        elif kind == "fermentation":
            gain = env_energy * efficiency * 0.05
        else:
            # Heterotrophs feed by predation
            gain = 0.0
        before = self.energy
        self.energy = min(self.energy + gain, self.phenotype.energy_capacity)
        return self.energy - before

    def tick_age(self):
        """Age one tick and pay basal and neural upkeep. Returns the energy spent."""
        self.age += 1
        cost = self.phenotype.basal_metabolic_rate + neat.neural_cost(self.genome.neural)
        self.energy -= cost
        if self.energy <= 0 or self.integrity <= 0 or self.age > self.phenotype.max_age:
            self.alive = False
        return cost

    def can_divide(self):
        p = self.phenotype
        return (self.energy > p.energy_capacity * p.division_threshold
                and self.actuator_outputs[DIVISION] > 0.5)

    def divide(self, rng, innovations, params=neat.DEFAULT_MUTATION, fraction=None,
               world_size=None):
        """Bud off a mutated child. The parent pays the transfer plus the division cost."""
        child_genome = self.genome.replicate(rng, innovations, params)
        angle = rng.range(0.0, 2.0 * math.pi)
        reach = self.phenotype.body_radius * 2.0
        x = self.x + math.cos(angle) * reach
        y = self.y + math.sin(angle) * reach
        if world_size is not None:
            x %= world_size
            y %= world_size

        if fraction is None:
            fraction = self.phenotype.offspring_size
        transfer = self.energy * fraction
        child = Organism(child_genome, x, y, self.generation + 1, energy=transfer)
        child.parent_id = self.id
        child.species = self.species

        self.energy -= transfer + self.phenotype.division_energy_cost
        self.offspring += 1
        return child

    def take_damage(self, amount):
        self.integrity -= amount * (1.0 - self.shell * 0.5)
        if self.integrity <= 0:
            self.alive = False

    def die(self):
        self.alive = False
