"""Agent keypair loading and the immutable agent context."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import base58
from solders.keypair import Keypair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentContext:
    """The disposable signer and the vault it routes through.

    Built once at startup and passed explicitly to every component that signs
    or identifies itself. The keypair never holds liquidation proceeds.
    """

    keypair: Keypair
    vault_creator: str

    @property
    def pubkey(self) -> str:
        return str(self.keypair.pubkey())


_SECRET_KEY_LENGTH = 64


def _keypair_from_raw(raw: bytes) -> Keypair:
    if len(raw) != _SECRET_KEY_LENGTH:
        raise ValueError(
            f"SOLANA_PRIVATE_KEY must decode to {_SECRET_KEY_LENGTH} bytes, got {len(raw)}"
        )
    return Keypair.from_bytes(raw)


def _keypair_from_json(parsed: object) -> Keypair:
    if not isinstance(parsed, list):
        raise ValueError("SOLANA_PRIVATE_KEY JSON must be a byte array")
    try:
        raw = bytes(parsed)
    except (TypeError, ValueError) as e:
        raise ValueError(f"SOLANA_PRIVATE_KEY byte array is invalid: {e}") from e
    return _keypair_from_raw(raw)


def _keypair_from_base58(secret: str) -> Keypair:
    try:
        raw = base58.b58decode(secret)
    except ValueError as e:
        raise ValueError(f"SOLANA_PRIVATE_KEY is not valid base58: {e}") from e
    return _keypair_from_raw(raw)


def load_agent_keypair(secret: str | None) -> Keypair:
    """Reconstruct the agent keypair from ``secret`` or generate a fresh one.

    ``secret`` may be a JSON byte array (``[12, 34, ...]``, the Solana CLI
    keyfile format) or a base58 string.
    """
    if not secret:
        logger.info("generated fresh agent keypair")
        return Keypair()

    try:
        parsed = json.loads(secret)
    except json.JSONDecodeError:
        keypair = _keypair_from_base58(secret)
    else:
        keypair = _keypair_from_json(parsed)

    logger.info("loaded keypair from SOLANA_PRIVATE_KEY")
    return keypair


def generate_secret() -> tuple[str, str]:
    """Return a fresh ``(base58 secret, pubkey)`` pair."""
    keypair = Keypair()
    return base58.b58encode(bytes(keypair)).decode(), str(keypair.pubkey())
