"""
Asset signing for the gateway.
"""

from .signer import AssetSigner

__all__ = ["AssetSigner"]
