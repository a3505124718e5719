"""Shared test fixtures, sample data and in-memory collaborators."""
from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Any

import pytest
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from vault_liquidator.config import (
    AppConfig,
    KeeperConfig,
    NotificationsConfig,
    ScannerConfig,
    SolanaConfig,
    TorchConfig,
)
from vault_liquidator.identity import AgentContext
from vault_liquidator.models import (
    ConfirmationResult,
    HealthTier,
    LiquidationTransaction,
    LoanPosition,
    TradableUnit,
    VaultInfo,
    VaultLink,
)

VAULT_CREATOR = "VaultCreator1111111111111111111111111111111"
AUTHORITY = "Authority11111111111111111111111111111111111"

_ENV_VARS = (
    "SOLANA_RPC_URL",
    "RPC_URL",
    "VAULT_CREATOR",
    "SOLANA_PRIVATE_KEY",
    "SCAN_INTERVAL_MS",
    "LOG_LEVEL",
    "TORCH_API_URL",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's shell and .env out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("vault_liquidator.config.load_dotenv", lambda *a, **k: False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo any configure_logging() call made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        keeper=KeeperConfig(
            vault_creator=VAULT_CREATOR,
            scan_interval_ms=5000,
            call_timeout_seconds=1.0,
        ),
        solana=SolanaConfig(rpc_endpoints=("https://rpc.example.com",), rpc_timeout=5),
        torch=TorchConfig(api_url="https://torch.example.com/v1", confirm_poll_seconds=0),
        scanner=ScannerConfig(),
        notifications=NotificationsConfig(),
    )


# ---------------------------------------------------------------------------
# Agent fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def agent_keypair() -> Keypair:
    return Keypair()


@pytest.fixture()
def agent(agent_keypair: Keypair) -> AgentContext:
    return AgentContext(keypair=agent_keypair, vault_creator=VAULT_CREATOR)


def build_unsigned_transaction(payer: Keypair) -> VersionedTransaction:
    """A one-instruction transaction whose only required signer is ``payer``."""
    ix = Instruction(Pubkey.new_unique(), b"liquidate", [])
    message = MessageV0.try_compile(payer.pubkey(), [ix], [], Hash.default())
    return VersionedTransaction(message, [payer])


@pytest.fixture()
def unsigned_transaction(agent_keypair: Keypair) -> VersionedTransaction:
    return build_unsigned_transaction(agent_keypair)


# ---------------------------------------------------------------------------
# Model helpers
# ---------------------------------------------------------------------------


def _make_unit(symbol: str) -> TradableUnit:
    return TradableUnit(mint=f"{symbol}Mint1111111111111111111111111111", symbol=symbol)


def _make_position(
    unit: TradableUnit, borrower: str, health: HealthTier, ltv_bps: int | None = 9000
) -> LoanPosition:
    return LoanPosition(
        mint=unit.mint,
        borrower=borrower,
        health=health,
        total_owed=2_500_000_000,
        collateral_amount=1_000_000_000_000,
        current_ltv_bps=ltv_bps,
    )


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeLendingProtocol:
    """In-memory lending protocol that behaves like a live data source.

    ``positions`` maps mint → list of positions, or an exception to raise.
    A confirmed liquidation removes the borrower's position, so the next
    cycle no longer sees it.
    """

    def __init__(
        self,
        units: list[TradableUnit],
        positions: dict[str, Any],
        payer: Keypair,
        vault: VaultInfo | None = None,
        link: VaultLink | None = None,
    ) -> None:
        self.units = list(units)
        self.positions = dict(positions)
        self.payer = payer
        self.vault = vault
        self.link = link
        self.discover_error: Exception | None = None
        self.build_errors: dict[str, Exception] = {}
        self.confirm_error: Exception | None = None
        self.discover_calls: list[dict[str, Any]] = []
        self.position_calls: list[str] = []
        self.build_calls: list[dict[str, str]] = []
        self.confirm_calls: list[tuple[str, str]] = []
        self._pending: list[tuple[str, str]] = []

    async def discover_units(self, status: str, sort: str, limit: int) -> list[TradableUnit]:
        self.discover_calls.append({"status": status, "sort": sort, "limit": limit})
        if self.discover_error is not None:
            raise self.discover_error
        return self.units[:limit]

    async def get_positions(self, mint: str) -> list[LoanPosition]:
        self.position_calls.append(mint)
        entry = self.positions.get(mint, [])
        if isinstance(entry, Exception):
            raise entry
        return list(entry)

    async def get_vault(self, creator: str) -> VaultInfo | None:
        return self.vault

    async def get_vault_link(self, wallet: str) -> VaultLink | None:
        return self.link

    async def build_liquidate_transaction(
        self, mint: str, liquidator: str, borrower: str, vault: str
    ) -> LiquidationTransaction:
        self.build_calls.append(
            {"mint": mint, "liquidator": liquidator, "borrower": borrower, "vault": vault}
        )
        if borrower in self.build_errors:
            raise self.build_errors[borrower]
        self._pending.append((mint, borrower))
        return LiquidationTransaction(
            transaction=build_unsigned_transaction(self.payer),
            message="repaid 2.5000 SOL, seized collateral to vault",
        )

    async def confirm_transaction(self, signature: str, signer: str) -> ConfirmationResult:
        self.confirm_calls.append((signature, signer))
        if self.confirm_error is not None:
            raise self.confirm_error
        mint, borrower = self._pending.pop()
        entry = self.positions.get(mint)
        if isinstance(entry, list):
            self.positions[mint] = [p for p in entry if p.borrower != borrower]
        return ConfirmationResult(signature=signature, slot=1)


class FakeChainClient:
    """Records submitted transactions and hands back deterministic signatures."""

    def __init__(self) -> None:
        self.sent: list[bytes] = []
        self.send_error: Exception | None = None

    async def send_raw_transaction(self, raw: bytes) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw)
        return f"5ig{len(self.sent):04d}" + "x" * 80

    async def get_signature_statuses(self, signatures: list[str]) -> list[dict[str, Any] | None]:
        return [{"confirmationStatus": "confirmed", "err": None, "slot": 1} for _ in signatures]

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        return None


@pytest.fixture()
def sample_vault() -> VaultInfo:
    return VaultInfo(creator=VAULT_CREATOR, authority=AUTHORITY, sol_balance=12_500_000_000)


@pytest.fixture()
def fake_chain() -> FakeChainClient:
    return FakeChainClient()


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    keeper:
      vault_creator: "VaultFromYaml"
      scan_interval_ms: 15000
      call_timeout_seconds: 10
      log_level: debug
    solana:
      rpc_endpoints: ["https://rpc.example.com", "https://rpc2.example.com"]
      rpc_timeout: 10
    torch:
      api_url: "https://torch.example.com/v1/"
    scanner:
      discovery_limit: 25
      validate_sort_order: true
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample gateway payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_tokens_payload() -> dict:
    return {
        "tokens": [
            {"mint": "MintA111", "symbol": "AAA", "name": "Token A", "volume_24h": "1500.5"},
            {"mint": "MintB222", "symbol": "BBB", "name": "Token B", "volume_24h": 900},
            {"symbol": "NOMINT"},
        ]
    }


@pytest.fixture()
def sample_positions_payload() -> dict:
    return {
        "positions": [
            {
                "borrower": "BorrowerOne111111111111111111111111111111",
                "health": "liquidatable",
                "total_owed": "2500000000",
                "collateral_amount": "1000000000000",
                "current_ltv_bps": 9150,
            },
            {
                "borrower": "BorrowerTwo222222222222222222222222222222",
                "health": "at_risk",
                "total_owed": 1000000000,
                "collateral_amount": 800000000000,
                "current_ltv_bps": None,
            },
            {
                "borrower": "BorrowerThree33333333333333333333333333333",
                "health": "mystery",
                "total_owed": 0,
                "collateral_amount": 0,
            },
        ]
    }


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_unit():
    return _make_unit


@pytest.fixture()
def make_position():
    return _make_position


@pytest.fixture()
def make_protocol(agent: AgentContext, sample_vault: VaultInfo):
    """Build a FakeLendingProtocol whose vault exists and is linked by default."""

    def _factory(
        units: list[TradableUnit],
        positions: dict[str, Any],
        vault: VaultInfo | None = sample_vault,
        link: VaultLink | None = VaultLink(vault=VAULT_CREATOR, wallet=agent.pubkey),
    ) -> FakeLendingProtocol:
        return FakeLendingProtocol(units, positions, agent.keypair, vault=vault, link=link)

    return _factory
