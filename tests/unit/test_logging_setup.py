"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

import pytest

from vault_liquidator.logging_setup import configure_logging


class TestConfigureLogging:
    def test_sets_info_level(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_sets_debug_level(self) -> None:
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_warn_alias(self) -> None:
        configure_logging("warn")
        assert logging.getLogger().level == logging.WARNING

    def test_silences_aiohttp(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("aiohttp").level == logging.WARNING

    def test_invalid_level_defaults_to_info(self) -> None:
        configure_logging("NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_single_handler_after_reconfigure(self) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1

    def test_line_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO")
        logging.getLogger("vault_liquidator.test").warning("LIQUIDATION FAILED | X")
        out = capsys.readouterr().out.strip()
        assert out.startswith("[")
        assert "] WARN  LIQUIDATION FAILED | X" in out

    def test_filters_below_minimum(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("warn")
        logging.getLogger("vault_liquidator.test").info("hidden")
        assert capsys.readouterr().out == ""
