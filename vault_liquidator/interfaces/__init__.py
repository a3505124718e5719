"""Protocol interfaces for the liquidation keeper."""
from .chain import ChainClient
from .lending_protocol import LendingProtocol
from .notifier import Notifier

__all__ = ["ChainClient", "LendingProtocol", "Notifier"]
