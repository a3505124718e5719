"""Service modules"""
from .executor import LiquidationExecutor
from .keeper import Keeper
from .scanner import PositionScanner

__all__ = ["LiquidationExecutor", "Keeper", "PositionScanner"]
