import asyncio

import pytest

from app.features.pipeline.domain.errors import CollaboratorError
from app.features.pipeline.domain.models import Application, PipelineStage
from app.features.pipeline.services.pipeline_session import PipelineSession

APPLIED, SCREENING, INTERVIEW, OFFER = 5, 6, 8, 9


class FakeActions:
    """In-memory collaborator. Records every call and tracks in-flight concurrency."""

    def __init__(self, stages=(), applications=()):
        self.stages = list(stages)
        self.applications = list(applications)
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, int], Exception] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.interview_response: dict | None = None
        self.interview_error: Exception | None = None
        self.ping_ok = True

    def fail(self, method: str, application_id: int, exc: Exception | None = None) -> None:
        self.failures[(method, application_id)] = exc or CollaboratorError("boom", status_code=500)

    def calls_for(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    async def _call(self, method: str, key: int, *args):
        self.calls.append((method, key, *args))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            exc = self.failures.get((method, key))
            if exc is not None:
                raise exc
        finally:
            self.in_flight -= 1

    async def list_stages(self):
        return list(self.stages)

    async def list_applications(self, job_id: int):
        return list(self.applications)

    async def ping(self) -> bool:
        return self.ping_ok

    async def move_stage(self, application_id, stage_id, notes=None):
        await self._call("move_stage", application_id, stage_id, notes)
        return None

    async def send_email(self, application_id, template_id):
        await self._call("send_email", application_id, template_id)
        return {"success": True}

    async def send_form_invitation(self, application_id, form_id, custom_message=None):
        await self._call("send_form_invitation", application_id, form_id, custom_message)
        return {"id": 1000 + application_id}

    async def update_status(self, application_id, status, notes=None):
        await self._call("update_status", application_id, status, notes)
        return None

    async def update_stage_order(self, stage_id, order):
        await self._call("update_stage_order", stage_id, order)

    async def schedule_interview_batch(
        self,
        application_ids,
        start_time,
        interval_hours,
        location,
        notes=None,
        stage_id=None,
        time_range_label=None,
    ):
        self.calls.append(
            ("schedule_interview_batch", tuple(application_ids), start_time, interval_hours, location, stage_id)
        )
        if self.interview_error is not None:
            raise self.interview_error
        if self.interview_response is not None:
            return self.interview_response
        return {
            "total": len(application_ids),
            "scheduledCount": len(application_ids),
            "failedCount": 0,
            "failed": [],
        }


def build_stages() -> list[PipelineStage]:
    return [
        PipelineStage(id=APPLIED, name="Applied", order=0, color="#3b82f6"),
        PipelineStage(id=SCREENING, name="Screening", order=1, color="#8b5cf6"),
        PipelineStage(id=INTERVIEW, name="Interview", order=2, color="#f59e0b"),
        PipelineStage(id=OFFER, name="Offer", order=3, color="#10b981"),
    ]


def build_applications(count: int = 7, stage: int | None = APPLIED) -> list[Application]:
    return [
        Application(id=i, name=f"Candidate {i}", email=f"c{i}@example.com", current_stage=stage)
        for i in range(1, count + 1)
    ]


@pytest.fixture
def stages():
    return build_stages()


@pytest.fixture
def applications():
    return build_applications()


@pytest.fixture
def fake_actions(stages, applications):
    return FakeActions(stages, applications)


@pytest.fixture
def session(fake_actions, stages, applications):
    return PipelineSession(fake_actions, stages=stages, applications=applications, actor="recruiter-1")


@pytest.fixture
def make_session():
    def _make(applications=None, stages=None, concurrency_limit=None):
        stage_list = build_stages() if stages is None else stages
        app_list = build_applications() if applications is None else applications
        actions = FakeActions(stage_list, app_list)
        board = PipelineSession(
            actions,
            stages=stage_list,
            applications=app_list,
            actor="recruiter-1",
            concurrency_limit=concurrency_limit,
        )
        return board, actions

    return _make
