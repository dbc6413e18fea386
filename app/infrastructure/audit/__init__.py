"""
Audit trail for pipeline mutations.
"""

from app.infrastructure.audit.audit_logger import AuditLogger, audit_logger
from app.infrastructure.audit.transition_log import TransitionHistory

__all__ = ["AuditLogger", "audit_logger", "TransitionHistory"]
