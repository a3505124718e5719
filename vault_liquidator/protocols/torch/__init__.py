from .adapter import TorchAdapter

__all__ = ["TorchAdapter"]
