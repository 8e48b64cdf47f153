"""
Audit trail for device access decisions.
"""

from .logger import AuditLogger

__all__ = ["AuditLogger"]
