"""
Device trust verification for the gateway.
"""

from .base import TrustStrategy, normalize_headers
from .certificate import CertificateSubjectStrategy
from .coordination import CoordinationServiceStrategy
from .dispatcher import AuthDispatcher, default_strategies
from .mdm import MdmTokenStrategy
from .none import NoneStrategy

__all__ = [
    "AuthDispatcher",
    "CertificateSubjectStrategy",
    "CoordinationServiceStrategy",
    "MdmTokenStrategy",
    "NoneStrategy",
    "TrustStrategy",
    "default_strategies",
    "normalize_headers",
]
