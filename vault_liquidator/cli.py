"""Command-line interface for the vault liquidation keeper."""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys

from .config import MIN_SCAN_INTERVAL_MS, AppConfig, load_config
from .errors import VaultNotLinkedError
from .identity import AgentContext, generate_secret, load_agent_keypair
from .logging_setup import configure_logging
from .services import Keeper

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="vault-liquidator",
        description="Vault-routed liquidation keeper for Torch lending markets",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root, if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.lower,
        choices=["debug", "info", "warn", "error"],
        help="Logging level (default: LOG_LEVEL or info)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Preflight, then scan and liquidate forever")
    run_parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help=f"Milliseconds between scan cycles (min {MIN_SCAN_INTERVAL_MS}, overrides config)",
    )
    run_parser.add_argument(
        "--validate-order",
        action="store_true",
        help="Check that each unit's positions arrive sorted by health",
    )

    scan_parser = sub.add_parser("scan", help="Preflight, then run a single scan cycle")
    scan_parser.add_argument(
        "--validate-order",
        action="store_true",
        help="Check that each unit's positions arrive sorted by health",
    )

    sub.add_parser("preflight", help="Check the vault and agent link, then exit")
    sub.add_parser("keygen", help="Print a fresh disposable agent keypair")

    return parser


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Fold command-line overrides into the frozen config."""
    keeper = config.keeper
    scanner = config.scanner

    interval = getattr(args, "interval_ms", None)
    if interval is not None:
        if interval < MIN_SCAN_INTERVAL_MS:
            raise ValueError(f"--interval-ms must be >= {MIN_SCAN_INTERVAL_MS}")
        keeper = dataclasses.replace(keeper, scan_interval_ms=interval)

    if args.log_level:
        keeper = dataclasses.replace(keeper, log_level=args.log_level)

    if getattr(args, "validate_order", False):
        scanner = dataclasses.replace(scanner, validate_sort_order=True)

    return dataclasses.replace(config, keeper=keeper, scanner=scanner)


def _print_banner(agent: AgentContext, config: AppConfig) -> None:
    print("=== torch liquidation bot ===")
    print(f"agent wallet: {agent.pubkey}")
    print(f"vault creator: {agent.vault_creator}")
    print(f"scan interval: {config.keeper.scan_interval_ms}ms")
    print()


def _fatal(message: object) -> int:
    print(f"FATAL: {message}", file=sys.stderr)
    return 1


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the process exit code."""
    configure_logging(args.log_level or "INFO")

    if args.command == "keygen":
        secret, pubkey = generate_secret()
        print(f"agent wallet: {pubkey}")
        print(f"SOLANA_PRIVATE_KEY={secret}")
        return 0

    try:
        config = _apply_overrides(load_config(args.config), args)
        configure_logging(config.keeper.log_level)
        keypair = load_agent_keypair(config.keeper.private_key)
    except (ValueError, FileNotFoundError) as e:
        return _fatal(e)

    agent = AgentContext(keypair=keypair, vault_creator=config.keeper.vault_creator)
    _print_banner(agent, config)
    keeper = Keeper(config, agent)

    try:
        if args.command == "preflight":
            await keeper.preflight()
        elif args.command == "scan":
            await keeper.run(max_cycles=1)
        else:
            await keeper.run()
    except VaultNotLinkedError as e:
        print(e.instructions())
        return 1
    except Exception as e:
        # Anything escaping here happened before the loop started.
        return _fatal(e)

    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("interrupted — shutting down")
        code = 0
    sys.exit(code)
