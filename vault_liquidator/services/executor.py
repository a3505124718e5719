"""Single-attempt liquidation executor."""
from __future__ import annotations

import logging

from solders.transaction import VersionedTransaction

from ..formatting import short
from ..identity import AgentContext
from ..interfaces.chain import ChainClient
from ..interfaces.lending_protocol import LendingProtocol
from ..interfaces.notifier import Notifier
from ..models import LiquidationOutcome, LoanPosition, TradableUnit
from ..timeouts import with_timeout

logger = logging.getLogger(__name__)


class LiquidationExecutor:
    """Build, sign, submit and confirm one liquidation through the vault."""

    def __init__(
        self,
        protocol: LendingProtocol,
        chain: ChainClient,
        agent: AgentContext,
        call_timeout: float,
        notifiers: list[Notifier] | None = None,
    ) -> None:
        self._protocol = protocol
        self._chain = chain
        self._agent = agent
        self._call_timeout = call_timeout
        self._notifiers = list(notifiers or [])

    async def execute(
        self, unit: TradableUnit, position: LoanPosition
    ) -> LiquidationOutcome:
        """Attempt one liquidation. Never raises; failures are logged and returned."""
        agent_pubkey = self._agent.pubkey
        try:
            built = await with_timeout(
                self._protocol.build_liquidate_transaction(
                    mint=unit.mint,
                    liquidator=agent_pubkey,
                    borrower=position.borrower,
                    vault=self._agent.vault_creator,
                ),
                "buildLiquidateTransaction",
                self._call_timeout,
            )

            signed = VersionedTransaction(built.transaction.message, [self._agent.keypair])

            signature = await with_timeout(
                self._chain.send_raw_transaction(bytes(signed)),
                "sendRawTransaction",
                self._call_timeout,
            )
            await with_timeout(
                self._protocol.confirm_transaction(signature, agent_pubkey),
                "confirmTransaction",
                self._call_timeout,
            )
        except Exception as e:
            logger.warning(
                "LIQUIDATION FAILED | %s | %s | %s",
                unit.symbol,
                short(position.borrower),
                e,
            )
            return LiquidationOutcome(
                mint=unit.mint,
                borrower=position.borrower,
                success=False,
                error=str(e),
            )

        logger.info(
            "LIQUIDATED | %s | borrower=%s | sig=%s | %s",
            unit.symbol,
            short(position.borrower),
            short(signature, 16),
            built.message,
        )
        await self._notify(unit, position, signature, built.message)
        return LiquidationOutcome(
            mint=unit.mint,
            borrower=position.borrower,
            success=True,
            signature=signature,
        )

    async def _notify(
        self, unit: TradableUnit, position: LoanPosition, signature: str, message: str
    ) -> None:
        if not self._notifiers:
            return
        text = (
            f"⚡ LIQUIDATED — {unit.symbol}\n"
            f"\n"
            f"Borrower: {short(position.borrower)}\n"
            f"Signature: {signature}\n"
            f"{message}"
        )
        for notifier in self._notifiers:
            try:
                await with_timeout(
                    notifier.send_alert(text, subject=f"Liquidated {unit.symbol}"),
                    "sendAlert",
                    self._call_timeout,
                )
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)
