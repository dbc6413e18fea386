from app.features.pipeline.domain.models import Application
from app.features.pipeline.stages.categorizer import bucket_for, categorize


def _app(app_id: int, status: str) -> Application:
    return Application(id=app_id, name=f"Candidate {app_id}", email="c@example.com", status=status, current_stage=5)


def test_mixed_stage_is_sub_sectioned():
    result = categorize(
        [_app(1, "rejected"), _app(2, "shortlisted"), _app(3, "submitted"), _app(4, "submitted")]
    )

    assert len(result.active) == 2
    assert len(result.advanced) == 1
    assert len(result.archived) == 1
    assert result.is_flat is False
    assert [name for name, _ in result.non_empty_buckets()] == ["active", "advanced", "archived"]


def test_single_bucket_renders_flat():
    result = categorize([_app(1, "submitted"), _app(2, "reviewed")])

    assert result.is_flat is True
    assert [name for name, _ in result.non_empty_buckets()] == ["active"]


def test_empty_buckets_are_omitted():
    result = categorize([_app(1, "downloaded"), _app(2, "rejected")])

    assert [name for name, _ in result.non_empty_buckets()] == ["advanced", "archived"]
    assert result.is_flat is False


def test_unknown_status_is_active():
    assert bucket_for(_app(1, "on-hold")) == "active"
    assert bucket_for(_app(2, "Shortlisted")) == "advanced"


def test_empty_stage_is_flat():
    result = categorize([])

    assert result.non_empty_buckets() == []
    assert result.is_flat is True
