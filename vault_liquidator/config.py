"""Configuration loader — reads config.yaml and the environment, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SCAN_INTERVAL_MS = 30_000
MIN_SCAN_INTERVAL_MS = 5_000
DEFAULT_CALL_TIMEOUT_SECONDS = 30.0
DEFAULT_DISCOVERY_LIMIT = 50
LOG_LEVELS = ("debug", "info", "warn", "error")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolanaConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    commitment: str = "confirmed"


@dataclass(frozen=True)
class TorchConfig:
    api_url: str = "https://api.torch.market/v1"
    request_timeout: int = 30
    confirm_poll_seconds: float = 2.0


@dataclass(frozen=True)
class ScannerConfig:
    discovery_status: str = "migrated"
    discovery_sort: str = "volume"
    discovery_limit: int = DEFAULT_DISCOVERY_LIMIT
    validate_sort_order: bool = False
    strict_sort_order: bool = False


@dataclass(frozen=True)
class KeeperConfig:
    vault_creator: str = ""
    private_key: str = field(default="", repr=False)
    scan_interval_ms: int = DEFAULT_SCAN_INTERVAL_MS
    call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS
    log_level: str = "info"


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    keeper: KeeperConfig = field(default_factory=KeeperConfig)
    solana: SolanaConfig = field(default_factory=SolanaConfig)
    torch: TorchConfig = field(default_factory=TorchConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _int_setting(name: str, raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay the process environment on top of the file settings.

    The environment always wins, so a bare ``VAULT_CREATOR=... SOLANA_RPC_URL=...``
    invocation works without any config file.
    """
    keeper = dict(raw.get("keeper") or {})
    solana = dict(raw.get("solana") or {})
    torch = dict(raw.get("torch") or {})

    rpc_url = os.environ.get("SOLANA_RPC_URL") or os.environ.get("RPC_URL")
    if rpc_url:
        endpoints = [e for e in solana.get("rpc_endpoints") or [] if e != rpc_url]
        solana["rpc_endpoints"] = [rpc_url, *endpoints]

    env_map = {
        "VAULT_CREATOR": "vault_creator",
        "SOLANA_PRIVATE_KEY": "private_key",
        "SCAN_INTERVAL_MS": "scan_interval_ms",
        "LOG_LEVEL": "log_level",
    }
    for env_name, key in env_map.items():
        value = os.environ.get(env_name)
        if value:
            keeper[key] = value

    api_url = os.environ.get("TORCH_API_URL")
    if api_url:
        torch["api_url"] = api_url

    return {**raw, "keeper": keeper, "solana": solana, "torch": torch}


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_keeper(raw: dict[str, Any]) -> KeeperConfig:
    return KeeperConfig(
        vault_creator=str(raw.get("vault_creator", "")).strip(),
        private_key=str(raw.get("private_key", "")).strip(),
        scan_interval_ms=_int_setting(
            "SCAN_INTERVAL_MS", raw.get("scan_interval_ms", DEFAULT_SCAN_INTERVAL_MS)
        ),
        call_timeout_seconds=float(
            raw.get("call_timeout_seconds", DEFAULT_CALL_TIMEOUT_SECONDS)
        ),
        log_level=str(raw.get("log_level", "info")).lower(),
    )


def _build_solana(raw: dict[str, Any]) -> SolanaConfig:
    return SolanaConfig(
        rpc_endpoints=tuple(e for e in raw.get("rpc_endpoints") or [] if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        commitment=raw.get("commitment", "confirmed"),
    )


def _build_torch(raw: dict[str, Any]) -> TorchConfig:
    return TorchConfig(
        api_url=str(raw.get("api_url", TorchConfig.api_url)).rstrip("/"),
        request_timeout=int(raw.get("request_timeout", 30)),
        confirm_poll_seconds=float(raw.get("confirm_poll_seconds", 2.0)),
    )


def _build_scanner(raw: dict[str, Any]) -> ScannerConfig:
    return ScannerConfig(
        discovery_status=raw.get("discovery_status", "migrated"),
        discovery_sort=raw.get("discovery_sort", "volume"),
        discovery_limit=int(raw.get("discovery_limit", DEFAULT_DISCOVERY_LIMIT)),
        validate_sort_order=bool(raw.get("validate_sort_order", False)),
        strict_sort_order=bool(raw.get("strict_sort_order", False)),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram") or {}
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML, .env and the environment.

    Args:
        config_path: Path to config.yaml. When omitted, ``config.yaml`` in the
            project root is used if it exists; otherwise the configuration
            comes from the environment alone.
    """
    load_dotenv()

    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = Path(__file__).resolve().parent.parent / "config.yaml"
        config_path = default_path if default_path.exists() else None

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Config file {config_path} is not valid YAML: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        raw = _interpolate_env(raw)

    raw = _apply_env_overrides(raw)

    cfg = AppConfig(
        keeper=_build_keeper(raw.get("keeper") or {}),
        solana=_build_solana(raw.get("solana") or {}),
        torch=_build_torch(raw.get("torch") or {}),
        scanner=_build_scanner(raw.get("scanner") or {}),
        notifications=_build_notifications(raw.get("notifications") or {}),
    )

    _validate(cfg)
    logger.debug("Configuration loaded from %s", config_path or "environment")
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.solana.rpc_endpoints:
        raise ValueError("SOLANA_RPC_URL env var is required (or RPC_URL)")

    if not cfg.keeper.vault_creator:
        raise ValueError("VAULT_CREATOR env var is required (vault creator pubkey)")

    if cfg.keeper.scan_interval_ms < MIN_SCAN_INTERVAL_MS:
        raise ValueError(f"SCAN_INTERVAL_MS must be a number >= {MIN_SCAN_INTERVAL_MS}")

    if cfg.keeper.log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}")

    if cfg.keeper.call_timeout_seconds <= 0:
        raise ValueError("call_timeout_seconds must be positive")

    if cfg.scanner.discovery_limit <= 0:
        raise ValueError("discovery_limit must be positive")

    if cfg.notifications.telegram.enabled and not cfg.notifications.telegram.chat_id:
        raise ValueError("Telegram notifications enabled but no chat_id configured")
