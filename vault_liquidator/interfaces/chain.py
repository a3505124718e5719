"""Chain client protocol — Solana RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for blockchain RPC interactions."""

    async def send_raw_transaction(self, raw: bytes) -> str: ...

    async def get_signature_statuses(
        self, signatures: list[str]
    ) -> list[dict[str, Any] | None]: ...

    async def get_transaction(self, signature: str) -> dict[str, Any] | None: ...
