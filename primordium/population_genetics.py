"""
Primordium — Population genetics
================================
Gene-type frequencies across the population, tracked snapshot to snapshot:
drift, near-fixation events, effective population size from the variance of
per-interval offspring, and a bottleneck flag when the population halves.
"""

import numpy as np


MAX_SNAPSHOTS = 200
FIXATION = 0.95


class PopulationGenetics:
    def __init__(self):
        self.snapshots = []
        self.total_fixations = 0
        self._previous_freq = {}
        self._previous_offspring = {}

    def analyze(self, organisms, tick):
        if not organisms:
            return {"tick": tick, "population_size": 0, "effective_population_size": 0,
                    "allele_frequencies": {}, "heterozygosity": 0.0, "fixation_events": 0}

        counts = {}
        total = 0
        for org in organisms:
            for gene in org.genome.genes:
                if gene.enabled:
                    counts[gene.type] = counts.get(gene.type, 0) + 1
                    total += 1

        freqs = {}
        fixations = 0
        for gene_type in sorted(counts):
            freq = counts[gene_type] / total
            prev = self._previous_freq.get(gene_type, freq)
            freqs[gene_type] = {"frequency": freq, "previous": prev, "drift": freq - prev}
            if freq > FIXATION >= prev:
                fixations += 1
        self.total_fixations += fixations
        self._previous_freq = {t: f["frequency"] for t, f in freqs.items()}

        offspring = np.array([o.offspring - self._previous_offspring.get(o.id, 0)
                              for o in organisms], dtype=float)
        self._previous_offspring = {o.id: o.offspring for o in organisms}
        mean = offspring.mean()
        var = offspring.var(ddof=1) if len(offspring) > 1 else 0.0
        n = len(organisms)
        ne = max(1, round(n / (1.0 + var / max(0.01, mean)))) if mean > 0 else n

        polymorphic = sum(1 for f in freqs.values() if 0.05 < f["frequency"] < FIXATION)
        snapshot = {
            "tick": tick,
            "population_size": n,
            "effective_population_size": int(ne),
            "allele_frequencies": freqs,
            "heterozygosity": polymorphic / len(freqs) if freqs else 0.0,
            "fixation_events": fixations,
        }
        self.snapshots.append(snapshot)
        del self.snapshots[:-MAX_SNAPSHOTS]
        return snapshot

    def apply_drift(self, organisms, rng):
        """Nudge a random gene's expression in a few organisms; stronger when Ne is small."""
        if len(organisms) <= 1 or not self.snapshots:
            return 0
        p = min(0.05, 1.0 / (self.snapshots[-1]["effective_population_size"] + 1))
        drifted = 0
        for org in organisms:
            if rng.next() > p or not org.genome.genes:
                continue
            idx = rng.int(0, len(org.genome.genes))
            gene = org.genome.genes[idx]
            regulatory = min(1.0, max(0.0, gene.regulatory + rng.gaussian(0.0, 0.1)))
            org.genome = org.genome.with_gene(idx, gene._replace(regulatory=regulatory))
            drifted += 1
        return drifted

    def check_bottleneck(self):
        if len(self.snapshots) < 2:
            return False
        return self.snapshots[-1]["population_size"] < self.snapshots[-2]["population_size"] * 0.5

    @property
    def latest_heterozygosity(self):
        return self.snapshots[-1]["heterozygosity"] if self.snapshots else 0.0
