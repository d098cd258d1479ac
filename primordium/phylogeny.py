"""
Primordium — Phylogeny
======================
Append-only lineage records keyed by organism id. Parents are referenced by
id, so a pruned ancestor simply ends a lineage walk.
"""


class PhyloNode:
    __slots__ = ("id", "parent_id", "species", "birth_tick", "death_tick",
                 "generation", "metabolism_type", "children")

    def __init__(self, node_id, parent_id, species, birth_tick, generation, metabolism_type):
        self.id = node_id
        self.parent_id = parent_id
        self.species = species
        self.birth_tick = birth_tick
        self.death_tick = None
        self.generation = generation
        self.metabolism_type = metabolism_type
        self.children = []


class PhylogeneticTree:
    def __init__(self):
        self.nodes = {}

    def __len__(self):
        return len(self.nodes)

    def add_node(self, node_id, parent_id, species, birth_tick, generation, metabolism_type):
        self.nodes[node_id] = PhyloNode(node_id, parent_id, species, birth_tick,
                                        generation, metabolism_type)
        parent = self.nodes.get(parent_id) if parent_id is not None else None
        if parent is not None:
            parent.children.append(node_id)

    def mark_death(self, node_id, tick):
        node = self.nodes.get(node_id)
        if node is not None:
            node.death_tick = tick

    def roots(self):
        return [n for n in self.nodes.values() if n.parent_id is None]

    def lineage(self, node_id):
        """Ancestors first, ending at the node itself."""
        chain = []
        node = self.nodes.get(node_id)
        while node is not None:
            chain.append(node)
            node = self.nodes.get(node.parent_id) if node.parent_id is not None else None
        chain.reverse()
        return chain

    def prune(self, max_nodes):
        if len(self.nodes) <= max_nodes:
            return 0
        # Stable sort keeps insertion order among equal birth ticks
        newest = sorted(self.nodes.values(), key=lambda n: -n.birth_tick)[:max_nodes]
        keep = {n.id for n in newest}
        removed = [nid for nid in self.nodes if nid not in keep]
        for nid in removed:
            del self.nodes[nid]
        for node in self.nodes.values():
            node.children = [c for c in node.children if c in keep]
        return len(removed)
