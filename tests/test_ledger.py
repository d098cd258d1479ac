import pytest

from primordium.ledger import EnergyLedger


class TestEnergyLedger:
    def test_balance(self):
        ledger = EnergyLedger()
        ledger.inject("energy_sources", 3.0)
        ledger.dissipate("molecular_decay", 1.0)
        # 10 held at start, +3 in, -1 out
        assert ledger.balance(12.0) == pytest.approx(10.0)

    def test_channels(self):
        ledger = EnergyLedger()
        ledger.inject("lightning", 2.0)
        ledger.inject("lightning", 0.5)
        ledger.inject("storm", 0.0)
        ledger.dissipate("death", -0.25)
        assert ledger.injections == {"lightning": 2.5}
        assert ledger.dissipations == {"death": -0.25}
        assert ledger.dissipated == -0.25

    def test_record_delta(self):
        ledger = EnergyLedger()
        ledger.record_delta("reactions", 1.5)
        ledger.record_delta("reactions", -0.5)
        assert ledger.injections["reactions"] == 1.5
        assert ledger.dissipations["reactions"] == 0.5

    def test_summary(self):
        ledger = EnergyLedger()
        ledger.inject("b", 1.0)
        ledger.inject("a", 1.0)
        summary = ledger.summary()
        assert list(summary["injections"]) == ["a", "b"]
        assert summary["injected"] == 2.0
