"""
Provider Credit Ledger.

Single source of truth for finite per-provider call budgets:
- Total / used / remaining credits per named provider
- Affordability checks before an attempt
- Charging after an attempt that consumed real quota
- Alert once per period when usage crosses a threshold (default 80%)

The ledger never decides *when* a period rolls over; the process scheduler
calls reset_all() (see bootstrap.run_maintenance). Thread-safe.
"""
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional

from loguru import logger

from utils.logger import audit_log


@dataclass
class ProviderCredit:
    """Credit budget for one provider."""
    provider: str
    total: int
    used: int = 0

    @property
    def remaining(self) -> int:
        return self.total - self.used


class ProviderCreditLedger:
    """Per-provider credit accounting.

    Usage:
        ledger = ProviderCreditLedger()
        ledger.register("firecrawl", total=400)

        if ledger.can_afford("firecrawl"):
            result = call_provider()
            ledger.charge("firecrawl")
    """

    def __init__(self, quota_alert_pct: float = 0.80):
        self._credits: Dict[str, ProviderCredit] = {}
        self._lock = Lock()
        self._alert_pct = quota_alert_pct
        self._alert_sent: Dict[str, bool] = {}

    def register(self, provider: str, total: int) -> None:
        """Declare a provider's budget. Re-registering keeps usage, updates total."""
        if total < 0:
            raise ValueError(f"Credit total for '{provider}' must be >= 0, got {total}")
        with self._lock:
            existing = self._credits.get(provider)
            used = min(existing.used, total) if existing else 0
            self._credits[provider] = ProviderCredit(provider=provider, total=total, used=used)
        logger.debug(f"Registered provider '{provider}' with {total} credits")

    def providers(self):
        with self._lock:
            return list(self._credits.keys())

    def remaining(self, provider: str) -> int:
        """Credits left. Unregistered providers have none."""
        with self._lock:
            credit = self._credits.get(provider)
            return credit.remaining if credit else 0

    def can_afford(self, provider: str, cost: int = 1) -> bool:
        return self.remaining(provider) >= cost

    def charge(self, provider: str, cost: int = 1) -> bool:
        """Consume credits. Returns False (and changes nothing) if unaffordable.

        Callers check can_afford() first; a refused charge is a bug in the
        caller, so it is logged loudly rather than raised.
        """
        with self._lock:
            credit = self._credits.get(provider)
            if credit is None or credit.remaining < cost:
                remaining = credit.remaining if credit else 0
                logger.error(
                    f"Refused charge of {cost} to '{provider}': "
                    f"only {remaining} credits remaining"
                )
                return False

            credit.used += cost
            remaining = credit.remaining
            total = credit.total
            used = credit.used
            should_alert = (
                total > 0 and
                used >= int(total * self._alert_pct) and
                not self._alert_sent.get(provider)
            )
            if should_alert:
                self._alert_sent[provider] = True

        audit_log("CREDIT_CHARGE", provider=provider, cost=cost,
                  remaining=remaining, total=total)

        if should_alert:
            pct = used / total * 100
            logger.warning(
                f"PROVIDER CREDIT WARNING: {provider} at {pct:.0f}% "
                f"({used}/{total})"
            )
        return True

    def exhaust(self, provider: str) -> None:
        """Provider reported its quota gone: treat every credit as used."""
        with self._lock:
            credit = self._credits.get(provider)
            if credit is None:
                return
            credit.used = credit.total
        audit_log("CREDIT_EXHAUSTED", provider=provider)
        logger.warning(f"Provider '{provider}' reported quota exhausted")

    def reset(self, provider: str) -> None:
        """Set used back to zero (period rollover or test isolation)."""
        with self._lock:
            credit = self._credits.get(provider)
            if credit is None:
                return
            credit.used = 0
            self._alert_sent.pop(provider, None)

    def reset_all(self) -> None:
        with self._lock:
            for credit in self._credits.values():
                credit.used = 0
            self._alert_sent.clear()
        audit_log("CREDIT_RESET_ALL", providers=len(self._credits))
        logger.info(f"Provider credits reset ({len(self._credits)} providers)")

    def get(self, provider: str) -> Optional[ProviderCredit]:
        """Snapshot of one provider's credit record."""
        with self._lock:
            credit = self._credits.get(provider)
            if credit is None:
                return None
            return ProviderCredit(provider=credit.provider, total=credit.total, used=credit.used)

    def get_usage(self) -> Dict[str, Dict]:
        """Usage stats for all providers. For the health report."""
        with self._lock:
            return {
                name: {
                    "used": c.used,
                    "total": c.total,
                    "remaining": c.remaining,
                    "pct": (c.used / c.total * 100) if c.total else None,
                }
                for name, c in self._credits.items()
            }

    def format_health_report(self) -> str:
        """Format provider credits for the health report."""
        usage = self.get_usage()
        if not usage:
            return ""

        lines = [
            "-" * 60,
            "  PROVIDER CREDITS",
            "-" * 60,
        ]
        for name, stats in sorted(usage.items()):
            status = "OK" if stats["remaining"] > 0 else "EXHAUSTED"
            pct = f"({stats['pct']:.0f}%)" if stats["pct"] is not None else ""
            lines.append(
                f"  {name:12s}  {stats['used']:>5d}/{stats['total']:<5d} "
                f"{pct}  {status}"
            )
        return "\n".join(lines)
