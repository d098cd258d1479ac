"""
Tests for the seeded generator
"""

import math

from primordium.rng import Rng


class TestRng:
    def test_same_seed_same_stream(self):
        a = Rng(42)
        b = Rng(42)
        assert [a.next() for _ in range(50)] == [b.next() for _ in range(50)]

    def test_different_seeds_diverge(self):
        a = Rng(1)
        b = Rng(2)
        assert [a.next() for _ in range(5)] != [b.next() for _ in range(5)]

    def test_first_value_is_mulberry32(self):
        # Mulberry32 reference: seed 0 gives 0x6D2B79F5 as its first state
        r = Rng(0)
        state = 0x6D2B79F5
        t = ((state ^ (state >> 15)) * (state | 1)) & 0xFFFFFFFF
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & 0xFFFFFFFF)) & 0xFFFFFFFF
        expected = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        assert r.next() == expected

    def test_unit_interval(self):
        r = Rng(7)
        for _ in range(2000):
            v = r.next()
            assert 0.0 <= v < 1.0

    def test_int_is_half_open(self):
        r = Rng(9)
        seen = {r.int(0, 4) for _ in range(500)}
        assert seen == {0, 1, 2, 3}

    def test_gaussian_is_finite(self):
        r = Rng(3)
        values = [r.gaussian(1.0, 2.0) for _ in range(1000)]
        assert all(math.isfinite(v) for v in values)
        assert abs(sum(values) / len(values) - 1.0) < 0.3

    def test_shuffle_returns_permutation_copy(self):
        r = Rng(5)
        items = list(range(20))
        shuffled = r.shuffle(items)
        assert sorted(shuffled) == items
        assert items == list(range(20))

    def test_fork_is_reproducible(self):
        a = Rng(11).fork()
        b = Rng(11).fork()
        assert a.seed == b.seed
        assert a.next() == b.next()

    def test_state_roundtrip(self):
        r = Rng(77)
        r.next()
        state = r.get_state()
        expected = [r.next() for _ in range(3)]
        r.set_state(state)
        assert [r.next() for _ in range(3)] == expected

    def test_unseeded_has_a_seed(self):
        r = Rng()
        assert 0 <= r.seed < 2 ** 31
