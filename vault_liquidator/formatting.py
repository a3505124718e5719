"""Small formatting helpers for log lines."""
from __future__ import annotations

LAMPORTS_PER_SOL = 1_000_000_000


def sol(lamports: int | float) -> str:
    """Render a lamport amount as SOL with four decimals."""
    return f"{lamports / LAMPORTS_PER_SOL:.4f}"


def bps_to_percent(bps: int | float) -> str:
    return f"{bps / 100:.2f}%"


def short(value: str, length: int = 8) -> str:
    """Truncate an address or signature for display, e.g. ``AbCdEfGh...``."""
    if len(value) <= length:
        return value
    return f"{value[:length]}..."
