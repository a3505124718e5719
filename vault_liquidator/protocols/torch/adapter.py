"""Torch protocol adapter — token discovery, loans, vaults and liquidation builds."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import TorchConfig
from ...errors import ConfirmationError
from ...interfaces.chain import ChainClient
from ...models import (
    ConfirmationResult,
    LiquidationTransaction,
    LoanPosition,
    TradableUnit,
    VaultInfo,
    VaultLink,
)
from . import parser

logger = logging.getLogger(__name__)

_CONFIRMED_STATUSES = ("confirmed", "finalized")


class TorchAdapter:
    """Read and build Torch lending operations through the Torch API gateway.

    Reads and transaction builds go to the gateway; confirmation goes straight
    to the chain client so a signature is never trusted on the gateway's word.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        config: TorchConfig,
        max_confirm_polls: int = 30,
    ) -> None:
        self._client = chain_client
        self._api_url = config.api_url.rstrip("/")
        self._timeout = config.request_timeout
        self._poll_seconds = config.confirm_poll_seconds
        self._max_confirm_polls = max_confirm_polls

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Call the gateway. Returns ``None`` on 404, raises on other errors."""
        url = f"{self._api_url}{path}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    text = await response.text()
                    raise RuntimeError(
                        f"Torch API {method} {path} failed: HTTP {response.status} {text[:200]}"
                    )
                return await response.json()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def discover_units(
        self, status: str, sort: str, limit: int
    ) -> list[TradableUnit]:
        payload = await self._request(
            "GET", "/tokens", params={"status": status, "sort": sort, "limit": limit}
        )
        units = parser.parse_units(payload or {})
        return units[:limit]

    async def get_positions(self, mint: str) -> list[LoanPosition]:
        """All open loans for ``mint``, in the gateway's worst-to-best order.

        A token without a lending market yields an empty list.
        """
        payload = await self._request("GET", f"/tokens/{mint}/loans")
        if payload is None:
            return []
        return parser.parse_positions(mint, payload)

    async def get_vault(self, creator: str) -> VaultInfo | None:
        payload = await self._request("GET", f"/vaults/{creator}")
        if not payload:
            return None
        return parser.parse_vault(creator, payload)

    async def get_vault_link(self, wallet: str) -> VaultLink | None:
        payload = await self._request("GET", f"/vaults/wallet/{wallet}")
        if not payload:
            return None
        return parser.parse_vault_link(wallet, payload)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def build_liquidate_transaction(
        self, mint: str, liquidator: str, borrower: str, vault: str
    ) -> LiquidationTransaction:
        """Build an unsigned liquidation routed through the vault of ``vault``.

        The vault pays the debt and receives the seized collateral; the
        liquidator only signs.
        """
        payload = await self._request(
            "POST",
            "/transactions/liquidate",
            payload={
                "mint": mint,
                "liquidator": liquidator,
                "borrower": borrower,
                "vault": vault,
            },
        )
        if payload is None:
            raise RuntimeError(f"no liquidation available for borrower {borrower}")
        return LiquidationTransaction(
            transaction=parser.decode_transaction(payload.get("transaction", "")),
            message=payload.get("message", ""),
        )

    async def confirm_transaction(
        self, signature: str, signer: str
    ) -> ConfirmationResult:
        """Wait until ``signature`` is confirmed and check who paid for it.

        Raises:
            ConfirmationError: the transaction failed on-chain, was never
                confirmed within the poll budget, or was not signed by
                ``signer``.
        """
        status: dict[str, Any] | None = None
        for _ in range(self._max_confirm_polls):
            statuses = await self._client.get_signature_statuses([signature])
            status = statuses[0] if statuses else None
            if status is not None:
                if status.get("err"):
                    raise ConfirmationError(
                        f"transaction {signature} failed: {status['err']}"
                    )
                if status.get("confirmationStatus") in _CONFIRMED_STATUSES:
                    break
            await asyncio.sleep(self._poll_seconds)
        else:
            raise ConfirmationError(
                f"transaction {signature} not confirmed after "
                f"{self._max_confirm_polls} polls"
            )

        tx = await self._client.get_transaction(signature)
        if tx is None:
            logger.debug("Transaction %s not yet indexed, skipping signer check", signature)
        else:
            payer = parser.fee_payer(tx)
            if payer and payer != signer:
                raise ConfirmationError(
                    f"transaction {signature} was signed by {payer}, expected {signer}"
                )

        return ConfirmationResult(
            signature=signature,
            slot=status.get("slot"),
            confirmation_status=status.get("confirmationStatus", "confirmed"),
        )
