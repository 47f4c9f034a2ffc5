"""
Audit Package.

Exports DecisionAuditLog.
"""

from .decision_log import DecisionAuditLog

__all__ = ["DecisionAuditLog"]
