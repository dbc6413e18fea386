"""
Bulk actions: command builders, batch-and-settle coordinator and the
server-side interview batch.
"""

from .commands import (
    archive_command,
    compute_interview_slots,
    interview_batch_command,
    move_stage_command,
    send_email_command,
    send_form_command,
)
from .coordinator import BulkOperationCoordinator, partition
from .interviews import InterviewBatchScheduler, normalize_batch_response

__all__ = [
    "BulkOperationCoordinator",
    "InterviewBatchScheduler",
    "archive_command",
    "compute_interview_slots",
    "interview_batch_command",
    "move_stage_command",
    "normalize_batch_response",
    "partition",
    "send_email_command",
    "send_form_command",
]
