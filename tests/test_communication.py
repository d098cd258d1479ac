"""
Tests for organism signalling
"""

import pytest

from primordium import neat
from primordium.communication import KEEP_SIGNALS, MAX_SIGNALS, CommunicationSystem
from primordium.genome import Genome, GeneType, make_gene
from primordium.organism import INGESTION, SIGNAL, Organism


def organism(x, y, signal_type=0.6, output=0.5):
    genes = [make_gene(GeneType.BODY_SIZE, (1.0,))]
    if signal_type:
        genes.append(make_gene(GeneType.SIGNAL_EMISSION, (signal_type,)))
    neural = neat.NeatGenome([neat.NodeGene(0, neat.INPUT), neat.NodeGene(1, neat.OUTPUT)], [])
    org = Organism(Genome(genes, neural), x, y, energy=5.0)
    org.actuator_outputs[SIGNAL] = output
    return org


@pytest.fixture
def comm():
    return CommunicationSystem(threshold=0.3, lifetime=50, cell_size=16.0)


class TestEmission:
    def test_emit(self, comm):
        org = organism(10.0, 10.0)
        event = comm.emit(org, 7)
        assert event.emitter_id == org.id
        assert event.signal_type == pytest.approx(0.6)
        assert event.intensity == pytest.approx(0.5)
        assert (event.x, event.y, event.tick) == (10.0, 10.0, 7)
        assert len(comm) == 1
        assert comm.total_emitted == 1

    def test_quiet_output_sends_nothing(self, comm):
        assert comm.emit(organism(0.0, 0.0, output=0.2), 1) is None
        assert comm.emit(organism(0.0, 0.0, output=-0.4), 1) is not None
        assert len(comm) == 1

    def test_needs_emission_gene(self, comm):
        assert comm.emit(organism(0.0, 0.0, signal_type=0.0, output=1.0), 1) is None
        assert comm.total_emitted == 0

    def test_log_trimmed_past_cap(self, comm):
        org = organism(5.0, 5.0)
        for t in range(MAX_SIGNALS + 1):
            last = comm.emit(org, t)
        assert len(comm) == KEEP_SIGNALS
        assert comm.signals[-1] is last
        assert comm.total_emitted == MAX_SIGNALS + 1


class TestReception:
    def test_heard_from_next_tick(self, comm):
        comm.emit(organism(10.0, 10.0), 1)
        listener = organism(20.0, 10.0, signal_type=0.0)
        assert comm.hear(listener, 15.0) == (None, None)
        comm.begin_tick(2)
        event, (level, dx, dy) = comm.hear(listener, 15.0)
        assert event is comm.signals[0]
        # 0.5 * 0.6 / (1 + 10)
        assert level == pytest.approx(0.3 / 11.0)
        assert (dx, dy) == (pytest.approx(-1.0), pytest.approx(0.0))
        assert comm.total_heard == 1

    def test_out_of_range(self, comm):
        comm.emit(organism(10.0, 10.0), 1)
        comm.begin_tick(2)
        assert comm.hear(organism(40.0, 10.0, signal_type=0.0), 15.0) == (None, None)
        assert comm.total_heard == 0

    def test_own_signal_ignored(self, comm):
        org = organism(10.0, 10.0)
        comm.emit(org, 1)
        comm.begin_tick(2)
        assert comm.hear(org, 15.0) == (None, None)

    def test_loudest_wins(self, comm):
        comm.emit(organism(12.0, 10.0, signal_type=0.2), 1)
        loud = comm.emit(organism(8.0, 10.0, signal_type=0.9), 1)
        comm.begin_tick(2)
        event, _ = comm.hear(organism(10.0, 10.0, signal_type=0.0), 15.0)
        assert event is loud

    def test_signals_fade(self, comm):
        comm.emit(organism(10.0, 10.0), 1)
        comm.begin_tick(50)
        assert len(comm) == 1
        comm.begin_tick(51)
        assert len(comm) == 0
        assert comm.signals_near(10.0, 10.0, 5.0) == []

    def test_protocols(self, comm):
        event = comm.emit(organism(10.0, 10.0), 1)
        outputs = [0.0] * 8
        outputs[INGESTION] = -0.9
        comm.record_response(event, outputs)
        comm.record_response(event, outputs)
        assert comm.protocols[(0.6, INGESTION)] == 2
        assert comm.summary() == {"active": 1, "emitted": 1, "heard": 0, "protocols": 1}
