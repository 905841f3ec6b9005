"""Backend adapters - Marketplace HTTP API implementations."""

from .http import HttpMarketplaceBackend

__all__ = ["HttpMarketplaceBackend"]
