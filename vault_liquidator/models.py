"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class HealthTier(str, Enum):
    """Risk classification of a loan, declared worst-to-best."""

    LIQUIDATABLE = "liquidatable"
    AT_RISK = "at_risk"
    HEALTHY = "healthy"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    @classmethod
    def parse(cls, value: Any) -> "HealthTier":
        """Map a raw health string to a tier; unknown values become NONE."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.NONE


_TIER_RANK = {tier: i for i, tier in enumerate(HealthTier)}


@dataclass(frozen=True)
class TradableUnit:
    """A token market with a lending sub-market."""

    mint: str
    symbol: str
    name: str = ""
    volume: float = 0.0


@dataclass(frozen=True)
class LoanPosition:
    """A borrower's open loan within one unit's lending market."""

    mint: str
    borrower: str
    health: HealthTier
    total_owed: int
    collateral_amount: int
    current_ltv_bps: int | None = None

    @property
    def is_liquidatable(self) -> bool:
        return self.health is HealthTier.LIQUIDATABLE


@dataclass(frozen=True)
class VaultInfo:
    creator: str
    authority: str
    sol_balance: int = 0


@dataclass(frozen=True)
class VaultLink:
    vault: str
    wallet: str


@dataclass(frozen=True)
class LiquidationTransaction:
    """Unsigned liquidation transaction plus the builder's summary message."""

    transaction: Any  # solders.transaction.VersionedTransaction
    message: str = ""


@dataclass(frozen=True)
class ConfirmationResult:
    signature: str
    slot: int | None = None
    confirmation_status: str = "confirmed"


@dataclass(frozen=True)
class LiquidationOutcome:
    """Result of one liquidation attempt. Failures are reported, never raised."""

    mint: str
    borrower: str
    success: bool
    signature: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class CycleReport:
    """Counters for one pass over the discovered units."""

    units_discovered: int = 0
    units_scanned: int = 0
    units_skipped: int = 0
    liquidatable_found: int = 0
    attempts: int = 0
    succeeded: int = 0
    failed: int = 0
