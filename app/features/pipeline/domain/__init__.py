"""
Domain subpackage for the pipeline board feature.
"""

from .errors import (
    CollaboratorError,
    DuplicateInvitationError,
    InvalidCommandError,
    NotFoundError,
    OptimisticRollbackError,
    PipelineError,
    UnauthorizedError,
    classify_failure,
)
from .models import (
    UNASSIGNED_STAGE_ID,
    Application,
    BulkCommand,
    BulkOperationResult,
    InterviewSlot,
    ItemOutcome,
    PipelineStage,
    StageTransition,
)

__all__ = [
    "UNASSIGNED_STAGE_ID",
    "Application",
    "BulkCommand",
    "BulkOperationResult",
    "InterviewSlot",
    "ItemOutcome",
    "PipelineStage",
    "StageTransition",
    "PipelineError",
    "CollaboratorError",
    "DuplicateInvitationError",
    "UnauthorizedError",
    "NotFoundError",
    "OptimisticRollbackError",
    "InvalidCommandError",
    "classify_failure",
]
