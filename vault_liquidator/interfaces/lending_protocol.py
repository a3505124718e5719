"""Lending protocol — the SDK surface the keeper reads from and writes through."""
from typing import Protocol

from ..models import (
    ConfirmationResult,
    LiquidationTransaction,
    LoanPosition,
    TradableUnit,
    VaultInfo,
    VaultLink,
)


class LendingProtocol(Protocol):
    """Abstract interface for discovering loans and building liquidations."""

    async def discover_units(
        self, status: str, sort: str, limit: int
    ) -> list[TradableUnit]: ...

    async def get_positions(self, mint: str) -> list[LoanPosition]:
        """All open positions for ``mint``, sorted worst-to-best health."""
        ...

    async def get_vault(self, creator: str) -> VaultInfo | None: ...

    async def get_vault_link(self, wallet: str) -> VaultLink | None: ...

    async def build_liquidate_transaction(
        self, mint: str, liquidator: str, borrower: str, vault: str
    ) -> LiquidationTransaction: ...

    async def confirm_transaction(
        self, signature: str, signer: str
    ) -> ConfirmationResult: ...
