"""
AuditLogger - Centralized audit logging for pipeline mutations.

Every operator action that changes candidate state (stage moves, status
updates, bulk runs, stage reorders) is written to the structured log with
consistent fields so it can be searched later.

Usage:
    from app.infrastructure.audit import audit_logger

    audit_logger.log(
        actor="recruiter-7",
        action="bulk_run_completed",
        resource_type="applications",
        resource_count=12,
        metadata={"kind": "moveStage", "failed": 2},
        request_id="req-abc123",
    )

Design Principles:
- Never fail the operation if audit logging fails
- Capture enough context for investigations
"""

from typing import Any

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """Structured audit trail writer."""

    @staticmethod
    def log(
        actor: str,
        action: str,
        resource_type: str | None = None,
        resource_id: int | str | None = None,
        resource_count: int | None = None,
        request_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Log an audit event.

        Args:
            actor: Operator who performed the action (required)
            action: Action name (e.g., "stage_changed", "bulk_run_completed")
            resource_type: Type of resource (e.g., "application", "pipeline_stage")
            resource_id: Specific resource ID
            resource_count: Number of resources affected
            request_id: Request correlation ID for tracing
            metadata: Additional context (JSON-serializable dict)

        Returns:
            True if logged successfully, False if failed (never raises)
        """
        try:
            logger.info(
                "Audit event",
                audit_action=action,
                actor=actor,
                resource_type=resource_type,
                resource_id=resource_id,
                resource_count=resource_count,
                request_id=request_id,
                metadata=metadata or {},
            )
            return True
        except Exception as e:
            logger.error("Failed to write audit event", audit_action=action, error=str(e))
            return False


audit_logger = AuditLogger()
