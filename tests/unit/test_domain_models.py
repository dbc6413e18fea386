from app.features.pipeline.domain.errors import (
    CollaboratorError,
    DuplicateInvitationError,
    NotFoundError,
    OptimisticRollbackError,
    UnauthorizedError,
    classify_failure,
    failure_reason,
)
from app.features.pipeline.domain.models import Application, BulkOperationResult, ItemOutcome, PipelineStage


def test_application_from_camel_case_payload():
    app = Application.from_dict(
        {
            "id": "12",
            "name": "Ada",
            "email": "ada@example.com",
            "status": "reviewed",
            "currentStage": 8,
            "interviewDate": "2026-03-02T09:00:00Z",
            "interviewLocation": "Room 4",
        }
    )

    assert app.id == 12
    assert app.current_stage == 8
    assert app.interview_date.hour == 9
    assert app.interview_location == "Room 4"


def test_application_without_stage_is_unassigned():
    app = Application.from_dict({"id": 3, "name": "Bo", "email": "bo@example.com", "currentStage": None})

    assert app.is_unassigned is True
    assert app.status == "submitted"


def test_stage_from_dict_defaults_color():
    stage = PipelineStage.from_dict({"id": 4, "name": "Screening", "order": 1, "color": None})

    assert stage.color == "#3b82f6"
    assert stage.to_dict() == {"id": 4, "name": "Screening", "order": 1, "color": "#3b82f6"}


def test_result_summary_and_dict():
    result = BulkOperationResult(kind="moveStage", total=3)
    result.per_item[1] = ItemOutcome.success()
    result.per_item[2] = ItemOutcome.error("boom")
    result.per_item[3] = ItemOutcome.success(detail="no-op")

    assert result.summary() == "Moved: 2, Failed: 1"
    assert result.summary("Updated") == "Updated: 2, Failed: 1"
    data = result.to_dict()
    assert data["succeeded"] == 2
    assert data["per_item"]["3"]["detail"] == "no-op"
    assert data["failure_breakdown"] == {"other-failure": 1}


def test_classify_failure_by_class_and_status():
    assert classify_failure(DuplicateInvitationError("dup")) == "duplicate-invitation"
    assert classify_failure(UnauthorizedError("nope")) == "unauthorized"
    assert classify_failure(CollaboratorError("conflict", status_code=409)) == "duplicate-invitation"
    assert classify_failure(CollaboratorError("forbidden", status_code=403)) == "unauthorized"
    assert classify_failure(CollaboratorError("oops", status_code=500)) == "other-failure"
    assert classify_failure(ValueError("x")) == "other-failure"


def test_rollback_error_is_unwrapped():
    cause = UnauthorizedError("Unauthorized", status_code=403)
    wrapped = OptimisticRollbackError(7, cause)

    assert classify_failure(wrapped) == "unauthorized"
    assert failure_reason(wrapped) == "Unauthorized"


def test_not_found_message():
    assert NotFoundError("Stage", 4).message == "Stage not found: 4"
