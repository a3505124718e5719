"""Pure parsing functions for Torch gateway payloads — no I/O."""
from __future__ import annotations

import base64
from typing import Any

from solders.transaction import VersionedTransaction

from ...models import HealthTier, LoanPosition, TradableUnit, VaultInfo, VaultLink


def _int(value: Any, default: int = 0) -> int:
    """Coerce a numeric field that may arrive as a string (u64 amounts)."""
    if value is None or value == "":
        return default
    return int(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def parse_unit(raw: dict[str, Any]) -> TradableUnit:
    mint = raw.get("mint", "")
    return TradableUnit(
        mint=mint,
        symbol=raw.get("symbol") or mint[:6],
        name=raw.get("name", ""),
        volume=float(raw.get("volume_24h", raw.get("volume", 0.0)) or 0.0),
    )


def parse_units(payload: dict[str, Any]) -> list[TradableUnit]:
    """Parse a token list, dropping entries without a mint."""
    return [parse_unit(t) for t in payload.get("tokens", []) if t.get("mint")]


def parse_position(mint: str, raw: dict[str, Any]) -> LoanPosition:
    """Parse one loan position.

    Amounts are kept in base units: ``total_owed`` in lamports and
    ``collateral_amount`` in raw token units.
    """
    return LoanPosition(
        mint=mint,
        borrower=raw.get("borrower", ""),
        health=HealthTier.parse(raw.get("health")),
        total_owed=_int(raw.get("total_owed")),
        collateral_amount=_int(raw.get("collateral_amount")),
        current_ltv_bps=_optional_int(raw.get("current_ltv_bps")),
    )


def parse_positions(mint: str, payload: dict[str, Any]) -> list[LoanPosition]:
    """Parse a position list, preserving the order the gateway returned."""
    return [
        parse_position(mint, p) for p in payload.get("positions", []) if p.get("borrower")
    ]


def parse_vault(creator: str, payload: dict[str, Any]) -> VaultInfo:
    raw = payload.get("vault", payload)
    return VaultInfo(
        creator=raw.get("creator", creator),
        authority=raw.get("authority", ""),
        sol_balance=_int(raw.get("sol_balance")),
    )


def parse_vault_link(wallet: str, payload: dict[str, Any]) -> VaultLink | None:
    raw = payload.get("link", payload)
    vault = raw.get("vault")
    if not vault:
        return None
    return VaultLink(vault=vault, wallet=raw.get("wallet", wallet))


def decode_transaction(encoded: str) -> VersionedTransaction:
    """Deserialize a base64 transaction as returned by the builder endpoint."""
    if not encoded:
        raise ValueError("builder returned an empty transaction")
    return VersionedTransaction.from_bytes(base64.b64decode(encoded))


def fee_payer(transaction: dict[str, Any]) -> str:
    """First account key of a ``getTransaction`` (json encoding) result."""
    keys = (
        transaction.get("transaction", {}).get("message", {}).get("accountKeys", [])
    )
    if not keys:
        return ""
    first = keys[0]
    return first.get("pubkey", "") if isinstance(first, dict) else str(first)
