"""
Tests for providers/credits.py - ProviderCreditLedger.

Covers: registration, affordability, charging and the charge guard,
threshold alert, exhaust/reset, health report and concurrent charging.
"""
import threading
from unittest.mock import patch

import pytest

from providers.credits import ProviderCredit, ProviderCreditLedger


class TestProviderCredit:
    def test_remaining(self):
        credit = ProviderCredit(provider="firecrawl", total=400, used=150)
        assert credit.remaining == 250


class TestLedger:
    """Credit bookkeeping for named providers."""

    def test_register(self, ledger):
        ledger.register("firecrawl", total=400)
        assert ledger.remaining("firecrawl") == 400
        assert ledger.providers() == ["firecrawl"]

    def test_register_negative_total(self, ledger):
        with pytest.raises(ValueError):
            ledger.register("firecrawl", total=-1)

    def test_reregister_keeps_usage(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.charge("firecrawl", 10)
        ledger.register("firecrawl", total=500)
        assert ledger.remaining("firecrawl") == 490

    def test_reregister_lower_total_caps_usage(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.charge("firecrawl", 100)
        ledger.register("firecrawl", total=50)
        assert ledger.remaining("firecrawl") == 0

    def test_unregistered_has_no_credits(self, ledger):
        """Unknown providers can never be charged."""
        assert ledger.remaining("unknown") == 0
        assert ledger.can_afford("unknown") is False
        assert ledger.charge("unknown") is False

    def test_can_afford(self, ledger):
        ledger.register("scraperapi", total=10)
        assert ledger.can_afford("scraperapi", 10)
        assert not ledger.can_afford("scraperapi", 11)

    def test_charge_decrements(self, ledger):
        ledger.register("scraperapi", total=5000)
        assert ledger.charge("scraperapi") is True
        assert ledger.charge("scraperapi", 10) is True
        assert ledger.remaining("scraperapi") == 4989

    def test_charge_guard(self, ledger):
        """An unaffordable charge changes nothing."""
        ledger.register("firecrawl", total=5)
        ledger.charge("firecrawl", 4)
        assert ledger.charge("firecrawl", 2) is False
        assert ledger.remaining("firecrawl") == 1

    def test_remaining_never_negative(self, ledger):
        ledger.register("firecrawl", total=3)
        for _ in range(10):
            ledger.charge("firecrawl")
        assert ledger.remaining("firecrawl") == 0
        assert ledger.get("firecrawl").used == 3

    def test_exhaust(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.exhaust("firecrawl")
        assert ledger.remaining("firecrawl") == 0
        assert not ledger.can_afford("firecrawl")

    def test_exhaust_unregistered_is_noop(self, ledger):
        ledger.exhaust("unknown")
        assert ledger.providers() == []

    def test_reset(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.register("scraperapi", total=5000)
        ledger.charge("firecrawl", 100)
        ledger.charge("scraperapi", 100)
        ledger.reset("firecrawl")
        assert ledger.remaining("firecrawl") == 400
        assert ledger.remaining("scraperapi") == 4900

    def test_reset_all(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.register("scraperapi", total=5000)
        ledger.exhaust("firecrawl")
        ledger.charge("scraperapi", 10)
        ledger.reset_all()
        assert ledger.remaining("firecrawl") == 400
        assert ledger.remaining("scraperapi") == 5000

    def test_get_returns_snapshot(self, ledger):
        ledger.register("firecrawl", total=400)
        snapshot = ledger.get("firecrawl")
        snapshot.used = 399
        assert ledger.remaining("firecrawl") == 400

    def test_get_unregistered(self, ledger):
        assert ledger.get("unknown") is None

    def test_get_usage(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.charge("firecrawl", 100)
        usage = ledger.get_usage()["firecrawl"]
        assert usage == {"used": 100, "total": 400, "remaining": 300, "pct": 25.0}

    def test_usage_pct_none_for_zero_total(self, ledger):
        ledger.register("free", total=0)
        assert ledger.get_usage()["free"]["pct"] is None


class TestQuotaAlert:
    """One warning per period when usage crosses the threshold."""

    def test_alert_fires_once(self):
        ledger = ProviderCreditLedger(quota_alert_pct=0.8)
        ledger.register("firecrawl", total=10)
        with patch("providers.credits.logger") as mock_logger:
            for _ in range(10):
                ledger.charge("firecrawl")
            warnings = [
                c for c in mock_logger.warning.call_args_list
                if "PROVIDER CREDIT WARNING" in c.args[0]
            ]
        assert len(warnings) == 1
        assert "firecrawl at 80%" in warnings[0].args[0]

    def test_alert_rearms_after_reset(self):
        ledger = ProviderCreditLedger(quota_alert_pct=0.5)
        ledger.register("firecrawl", total=2)
        with patch("providers.credits.logger") as mock_logger:
            ledger.charge("firecrawl")
            ledger.reset_all()
            ledger.charge("firecrawl")
            warnings = [
                c for c in mock_logger.warning.call_args_list
                if "PROVIDER CREDIT WARNING" in c.args[0]
            ]
        assert len(warnings) == 2

    def test_refused_charge_logs_error(self, ledger):
        ledger.register("firecrawl", total=0)
        with patch("providers.credits.logger") as mock_logger:
            ledger.charge("firecrawl")
        mock_logger.error.assert_called_once()


class TestHealthReport:
    def test_empty_ledger(self, ledger):
        assert ledger.format_health_report() == ""

    def test_report_lists_providers(self, ledger):
        ledger.register("firecrawl", total=400)
        ledger.register("scraperapi", total=5000)
        ledger.exhaust("firecrawl")
        report = ledger.format_health_report()
        assert "PROVIDER CREDITS" in report
        assert "firecrawl" in report and "EXHAUSTED" in report
        assert "scraperapi" in report and "OK" in report


class TestConcurrency:
    def test_concurrent_charges_never_overspend(self, ledger):
        """Parallel chargers cannot push usage past the total."""
        ledger.register("firecrawl", total=100)
        granted = []
        lock = threading.Lock()

        def charger():
            for _ in range(50):
                if ledger.charge("firecrawl"):
                    with lock:
                        granted.append(1)

        threads = [threading.Thread(target=charger) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(granted) == 100
        assert ledger.remaining("firecrawl") == 0
