"""Exception types raised by the keeper."""
from __future__ import annotations


class KeeperError(Exception):
    """Base class for keeper errors."""


class OperationTimeout(KeeperError, TimeoutError):
    """An external call did not finish before its deadline."""

    def __init__(self, label: str, seconds: float) -> None:
        super().__init__(f"{label} timed out after {seconds:g}s")
        self.label = label
        self.seconds = seconds


class ConfirmationError(KeeperError):
    """A submitted transaction failed on-chain or could not be verified."""


class SortOrderViolation(KeeperError):
    """Positions for a unit were not returned worst-to-best."""

    def __init__(self, mint: str, index: int) -> None:
        super().__init__(
            f"positions for {mint} are not sorted by health (first violation at index {index})"
        )
        self.mint = mint
        self.index = index


class PreflightError(KeeperError):
    """A startup check failed; the run loop must not start."""


class VaultNotFoundError(PreflightError):
    def __init__(self, vault_creator: str) -> None:
        super().__init__(f"vault not found for creator {vault_creator}")
        self.vault_creator = vault_creator


class VaultNotLinkedError(PreflightError):
    """The agent wallet has no link to the configured vault."""

    def __init__(self, vault_creator: str, agent_wallet: str) -> None:
        super().__init__(f"agent wallet {agent_wallet} is not linked to the vault")
        self.vault_creator = vault_creator
        self.agent_wallet = agent_wallet

    def instructions(self) -> str:
        """Operator-facing steps for linking the agent wallet."""
        return "\n".join(
            [
                "",
                "--- ACTION REQUIRED ---",
                "agent wallet is NOT linked to the vault.",
                "link it by running (from your authority wallet):",
                "",
                "  buildLinkWalletTransaction(connection, {",
                '    authority: "<your-authority-pubkey>",',
                f'    vault_creator: "{self.vault_creator}",',
                f'    wallet_to_link: "{self.agent_wallet}"',
                "  })",
                "",
                "then restart the bot.",
                "-----------------------",
            ]
        )
