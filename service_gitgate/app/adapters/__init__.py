"""
Adapters package for the gateway.

Contains HTTP client wrappers for upstream dependencies. Adapters
encapsulate base URLs and request shapes, retry policies, and error handling
that maps upstream failures to empty results.
"""

from .github_client import GitHubClient, ReleaseSource

__all__ = [
    "GitHubClient",
    "ReleaseSource",
]
