"""Vault-routed liquidation keeper for Torch lending markets."""

__version__ = "0.1.0"
