"""Scan-liquidate orchestration — preflight, scan cycles and the run loop."""
from __future__ import annotations

import asyncio
import logging

from ..chains.solana import SolanaClient
from ..config import AppConfig
from ..errors import VaultNotFoundError, VaultNotLinkedError
from ..formatting import bps_to_percent, short, sol
from ..identity import AgentContext
from ..interfaces.chain import ChainClient
from ..interfaces.lending_protocol import LendingProtocol
from ..interfaces.notifier import Notifier
from ..models import CycleReport, LoanPosition, TradableUnit, VaultInfo
from ..notifications import TelegramNotifier
from ..protocols.torch import TorchAdapter
from ..timeouts import with_timeout
from .executor import LiquidationExecutor
from .scanner import PositionScanner

logger = logging.getLogger(__name__)


class Keeper:
    """Runs the scan-liquidate loop for one agent wallet and one vault.

    Units are processed one at a time in discovery order, and positions
    within a unit in the order the data source returns them. Failures are
    contained at the lowest level that keeps the loop moving: one attempt,
    one unit, or one cycle. Only :meth:`preflight` can stop the process.
    """

    def __init__(
        self,
        config: AppConfig,
        agent: AgentContext,
        protocol: LendingProtocol | None = None,
        chain: ChainClient | None = None,
        notifiers: list[Notifier] | None = None,
    ) -> None:
        self._config = config
        self._agent = agent
        self._call_timeout = config.keeper.call_timeout_seconds
        self._scanner_cfg = config.scanner

        self._chain: ChainClient = chain or SolanaClient(config.solana)
        self._protocol: LendingProtocol = protocol or TorchAdapter(
            self._chain, config.torch
        )

        if notifiers is None:
            notifiers = []
            if config.notifications.telegram.enabled:
                notifiers.append(TelegramNotifier(config.notifications.telegram))

        self._scanner = PositionScanner(
            self._protocol,
            self._call_timeout,
            validate_order=config.scanner.validate_sort_order,
            strict_order=config.scanner.strict_sort_order,
        )
        self._notifiers = notifiers
        self._executor = LiquidationExecutor(
            self._protocol,
            self._chain,
            agent,
            self._call_timeout,
            notifiers=notifiers,
        )

    # ------------------------------------------------------------------
    # Preflight
    # ------------------------------------------------------------------

    async def preflight(self) -> VaultInfo:
        """Verify the vault exists and the agent wallet is linked to it.

        Raises:
            VaultNotFoundError: no vault for the configured creator.
            VaultNotLinkedError: the agent wallet is not linked.
            OperationTimeout: either lookup stalled.
        """
        creator = self._agent.vault_creator
        vault = await with_timeout(
            self._protocol.get_vault(creator), "getVault", self._call_timeout
        )
        if vault is None:
            raise VaultNotFoundError(creator)
        logger.info("vault found — authority=%s", vault.authority)

        link = await with_timeout(
            self._protocol.get_vault_link(self._agent.pubkey),
            "getVaultForWallet",
            self._call_timeout,
        )
        if link is None:
            raise VaultNotLinkedError(creator, self._agent.pubkey)
        logger.debug("agent wallet %s linked to vault %s", link.wallet, link.vault)

        logger.info("agent wallet linked to vault — starting scan loop")
        logger.info("treasury: %s SOL", sol(vault.sol_balance))
        return vault

    # ------------------------------------------------------------------
    # Scan cycle
    # ------------------------------------------------------------------

    @staticmethod
    def _describe(unit: TradableUnit, position: LoanPosition) -> str:
        ltv = (
            bps_to_percent(position.current_ltv_bps)
            if position.current_ltv_bps is not None
            else "?"
        )
        return (
            f"LIQUIDATABLE | {unit.symbol} | borrower={short(position.borrower)} | "
            f"LTV={ltv} | owed={sol(position.total_owed)} SOL"
        )

    async def scan_cycle(self) -> CycleReport:
        """One full pass over the discovered units.

        Discovery errors propagate to the caller; everything below is contained.
        """
        units = await with_timeout(
            self._protocol.discover_units(
                status=self._scanner_cfg.discovery_status,
                sort=self._scanner_cfg.discovery_sort,
                limit=self._scanner_cfg.discovery_limit,
            ),
            "getTokens",
            self._call_timeout,
        )
        logger.debug(
            "discovered %d %s tokens", len(units), self._scanner_cfg.discovery_status
        )

        scanned = skipped = found = attempts = succeeded = 0

        for unit in units:
            scanned += 1
            positions = await self._scanner.scan(unit)
            if not positions:
                skipped += 1
                continue

            logger.debug("%s — %d active loans", unit.symbol, len(positions))

            for position in self._scanner.actionable(unit, positions):
                found += 1
                logger.info(self._describe(unit, position))

                attempts += 1
                outcome = await self._executor.execute(unit, position)
                if outcome.success:
                    succeeded += 1

        return CycleReport(
            units_discovered=len(units),
            units_scanned=scanned,
            units_skipped=skipped,
            liquidatable_found=found,
            attempts=attempts,
            succeeded=succeeded,
            failed=attempts - succeeded,
        )

    async def run_cycle(self) -> CycleReport | None:
        """Run one cycle, logging and absorbing any error that escapes it."""
        try:
            logger.debug("--- scan cycle start ---")
            report = await self.scan_cycle()
            logger.debug(
                "--- scan cycle end --- scanned=%d skipped=%d attempts=%d "
                "succeeded=%d failed=%d",
                report.units_scanned,
                report.units_skipped,
                report.attempts,
                report.succeeded,
                report.failed,
            )
            return report
        except Exception as e:
            logger.error("scan cycle error: %s", e)
            return None

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def _announce(self, vault: VaultInfo) -> None:
        message = (
            f"Keeper started\n"
            f"Agent: {self._agent.pubkey}\n"
            f"Vault creator: {vault.creator}\n"
            f"Treasury: {sol(vault.sol_balance)} SOL"
        )
        for notifier in self._notifiers:
            try:
                await with_timeout(
                    notifier.send_log(message, silent=True), "sendLog", self._call_timeout
                )
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def run(self, max_cycles: int | None = None) -> None:
        """Preflight, then scan and sleep until the process is stopped.

        ``max_cycles`` bounds the loop (the ``scan`` command runs exactly one).
        Preflight errors propagate; cycle errors never do.
        """
        vault = await self.preflight()
        await self._announce(vault)

        interval = self._config.keeper.scan_interval_ms / 1000
        cycles = 0
        while True:
            await self.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                return
            await asyncio.sleep(interval)
