"""
Domain layer for the gateway.

Holds the explicitly constructed collaborator context and the delivery
pipeline that sequences trust, rate limiting, caching, signing and audit.
"""

from .context import GatewayContext, build_context
from .pipeline import AssetDelivery, ReleaseListing, RequestPipeline

__all__ = [
    "AssetDelivery",
    "GatewayContext",
    "ReleaseListing",
    "RequestPipeline",
    "build_context",
]
