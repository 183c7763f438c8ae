"""
Source Layer - WooCommerce REST access.
"""

from .client import ClientRegistry, WooCommerceClient
from .fetcher import PageFetcher

__all__ = [
    "ClientRegistry",
    "WooCommerceClient",
    "PageFetcher",
]
