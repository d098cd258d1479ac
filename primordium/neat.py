"""
Primordium — NEAT controllers
=============================
Small graph-valued networks evolved by mutation and crossover, with genes
aligned by innovation number.

Innovation numbers come from an InnovationTracker owned by the simulation.
Every structural mutation takes a fresh number, so two genomes that make the
same change independently do not share it.
"""

import math
from collections import namedtuple
from dataclasses import dataclass, replace


INPUT = "input"
HIDDEN = "hidden"
OUTPUT = "output"


# ─────────────────────────────────────────────────────────────
# Activations
# ─────────────────────────────────────────────────────────────

def sigmoid(x):
    return 1.0 / (1.0 + math.exp(-max(-500.0, min(500.0, x))))


def relu(x):
    return max(0.0, x)


def gaussian(x):
    return math.exp(-x * x)


ACTIVATIONS = {
    "sigmoid": sigmoid,
    "tanh": math.tanh,
    "relu": relu,
    "gaussian": gaussian,
    "sine": math.sin,
}

HIDDEN_ACTIVATIONS = ("sigmoid", "tanh", "relu", "gaussian", "sine")


# ─────────────────────────────────────────────────────────────
# Genes
# ─────────────────────────────────────────────────────────────

class InnovationTracker:
    def __init__(self, start=0):
        self.counter = start

    def next(self):
        self.counter += 1
        return self.counter

    def reset(self):
        self.counter = 0


@dataclass
class NodeGene:
    id: int
    kind: str
    activation: str = "sigmoid"
    bias: float = 0.0


@dataclass
class ConnectionGene:
    innovation: int
    source: int
    target: int
    weight: float
    enabled: bool = True


class NeatGenome:
    def __init__(self, nodes, connections, fitness=0.0):
        self.nodes = list(nodes)
        self.connections = list(connections)
        self.fitness = fitness
        self._plan = None

    def __repr__(self):
        return (f"NeatGenome(nodes={len(self.nodes)}, "
                f"connections={len(self.connections)}, hidden={self.hidden_count})")

    @property
    def input_ids(self):
        return [n.id for n in self.nodes if n.kind == INPUT]

    @property
    def output_ids(self):
        return [n.id for n in self.nodes if n.kind == OUTPUT]

    @property
    def hidden_count(self):
        return sum(1 for n in self.nodes if n.kind == HIDDEN)

    @property
    def enabled_count(self):
        return sum(1 for c in self.connections if c.enabled)

    def copy(self):
        return NeatGenome([replace(n) for n in self.nodes],
                          [replace(c) for c in self.connections], self.fitness)

    def _compile(self):
        # Evaluation order: hidden nodes then outputs, each with its enabled incoming edges
        incoming = {}
        for c in self.connections:
            if c.enabled:
                incoming.setdefault(c.target, []).append((c.source, c.weight))
        order = [n for n in self.nodes if n.kind == HIDDEN] + [n for n in self.nodes if n.kind == OUTPUT]
        self._plan = [(n.id, n.bias, ACTIVATIONS[n.activation], incoming.get(n.id, ()))
                      for n in order]
        return self._plan


def create_minimal_genome(n_inputs, n_outputs, rng, innovations):
    nodes = [NodeGene(i, INPUT, "sigmoid") for i in range(n_inputs)]
    nodes += [NodeGene(n_inputs + i, OUTPUT, "tanh") for i in range(n_outputs)]

    connections = []
    used = set()
    for _ in range(min(n_inputs * n_outputs, 3 + rng.int(0, 3))):
        for _attempt in range(20):
            pair = (rng.int(0, n_inputs), n_inputs + rng.int(0, n_outputs))
            if pair not in used:
                break
        if pair in used:
            continue
        used.add(pair)
        connections.append(ConnectionGene(innovations.next(), pair[0], pair[1], rng.gaussian(0.0, 1.0)))
    return NeatGenome(nodes, connections)


def forward(genome, inputs):
    """Two passes over hidden and output nodes; returns output values in node order."""
    plan = genome._plan if genome._plan is not None else genome._compile()
    values = {}
    input_nodes = [n.id for n in genome.nodes if n.kind == INPUT]
    for nid, value in zip(input_nodes, inputs):
        values[nid] = value

    for _ in range(2):
        for nid, bias, fn, edges in plan:
            total = bias
            for src, weight in edges:
                total += values.get(src, 0.0) * weight
            values[nid] = fn(total)
    return [values.get(n.id, 0.0) for n in genome.nodes if n.kind == OUTPUT]


# ─────────────────────────────────────────────────────────────
# Mutation
# ─────────────────────────────────────────────────────────────

class MutationParams(namedtuple("MutationParams", [
        "weight_rate", "perturbation", "add_connection_rate", "add_node_rate", "toggle_rate"])):
    __slots__ = ()

    @classmethod
    def from_config(cls, cfg):
        return cls(cfg.neat_weight_mutation_rate, cfg.neat_weight_perturbation,
                   cfg.neat_add_connection_rate, cfg.neat_add_node_rate,
                   cfg.neat_toggle_connection_rate)


DEFAULT_MUTATION = MutationParams(0.8, 0.1, 0.05, 0.03, 0.01)


def mutate(genome, rng, innovations, params=DEFAULT_MUTATION):
    """Return a mutated copy; the parent is untouched."""
    g = genome.copy()
    g.fitness = 0.0

    for conn in g.connections:
        if rng.next() < params.weight_rate:
            if rng.next() < 0.8:
                conn.weight += rng.gaussian(0.0, params.perturbation)
            else:
                conn.weight = rng.gaussian(0.0, 1.0)

    for node in g.nodes:
        if node.kind != INPUT and rng.next() < params.weight_rate * 0.5:
            node.bias += rng.gaussian(0.0, params.perturbation)

    if rng.next() < params.add_connection_rate:
        sources = [n for n in g.nodes if n.kind != OUTPUT]
        targets = [n for n in g.nodes if n.kind != INPUT]
        if sources and targets:
            src = rng.pick(sources)
            dst = rng.pick(targets)
            exists = any(c.source == src.id and c.target == dst.id for c in g.connections)
            if src.id != dst.id and not exists:
                g.connections.append(
                    ConnectionGene(innovations.next(), src.id, dst.id, rng.gaussian(0.0, 1.0)))

    if rng.next() < params.add_node_rate and g.connections:
        enabled = [c for c in g.connections if c.enabled]
        if enabled:
            conn = rng.pick(enabled)
            conn.enabled = False
            new_id = max(n.id for n in g.nodes) + 1
            g.nodes.append(NodeGene(new_id, HIDDEN, rng.pick(HIDDEN_ACTIVATIONS)))
            g.connections.append(ConnectionGene(innovations.next(), conn.source, new_id, 1.0))
            g.connections.append(ConnectionGene(innovations.next(), new_id, conn.target, conn.weight))

    if rng.next() < params.toggle_rate and g.connections:
        conn = rng.pick(g.connections)
        conn.enabled = not conn.enabled

    return g


# ─────────────────────────────────────────────────────────────
# Crossover and distance
# ─────────────────────────────────────────────────────────────

def crossover(a, b, rng):
    """Child aligned by innovation; disjoint and excess genes come from the fitter parent."""
    fit, less = (a, b) if a.fitness >= b.fitness else (b, a)
    less_conns = {c.innovation: c for c in less.connections}

    connections = []
    for conn in fit.connections:
        match = less_conns.get(conn.innovation)
        if match is not None and not rng.bool():
            connections.append(replace(match))
        else:
            connections.append(replace(conn))

    fit_nodes = {n.id: n for n in fit.nodes}
    less_nodes = {n.id: n for n in less.nodes}
    referenced = set()
    for c in connections:
        referenced.add(c.source)
        referenced.add(c.target)

    nodes = {}
    for nid in referenced:
        node = fit_nodes.get(nid) or less_nodes.get(nid)
        if node is not None:
            nodes[nid] = replace(node)
    for node in fit.nodes:
        if node.kind != HIDDEN and node.id not in nodes:
            nodes[node.id] = replace(node)

    return NeatGenome(sorted(nodes.values(), key=lambda n: n.id), connections)


def genetic_distance(a, b, c1=1.0, c2=1.0, c3=0.4):
    b_conns = {c.innovation: c for c in b.connections}
    a_innov = {c.innovation for c in a.connections}
    max_a = max(a_innov) if a_innov else 0
    max_b = max(b_conns) if b_conns else 0
    shared_max = min(max_a, max_b)

    matching = disjoint = excess = 0
    weight_diff = 0.0
    for c in a.connections:
        match = b_conns.get(c.innovation)
        if match is not None:
            matching += 1
            weight_diff += abs(c.weight - match.weight)
        elif c.innovation <= shared_max:
            disjoint += 1
        else:
            excess += 1
    for c in b.connections:
        if c.innovation not in a_innov:
            if c.innovation <= shared_max:
                disjoint += 1
            else:
                excess += 1

    n = max(len(a.connections), len(b.connections), 1)
    avg_diff = weight_diff / matching if matching else 0.0
    return c1 * excess / n + c2 * disjoint / n + c3 * avg_diff


def neural_cost(genome):
    return len(genome.nodes) * 0.001 + genome.enabled_count * 0.0005
