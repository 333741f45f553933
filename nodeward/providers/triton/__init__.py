"""Triton CloudAPI provider: client facade, address discovery and node reconciler."""

from .client import TritonClient, TritonError, create_client
from .config import Triton
from .discovery import DiscoveryResult, Exhausted, Found, TransportFailed, discover_addresses
from .resource import NodeResource, render

__all__ = [
    "DiscoveryResult",
    "Exhausted",
    "Found",
    "NodeResource",
    "TransportFailed",
    "Triton",
    "TritonClient",
    "TritonError",
    "create_client",
    "discover_addresses",
    "render",
]
