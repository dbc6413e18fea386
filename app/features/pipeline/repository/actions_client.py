"""
Collaborator action surface client.

The service that stores applications and stages (and enforces who may
mutate them) is reached over HTTP. This module owns transport policy:
timeouts, retry with backoff and mapping of error responses onto the
engine's error taxonomy. The engine itself only sees PipelineActions.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Protocol

import httpx

from app.config import settings
from app.features.pipeline.domain.errors import (
    CollaboratorError,
    DuplicateInvitationError,
    UnauthorizedError,
)
from app.features.pipeline.domain.models import Application, PipelineStage
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class PipelineActions(Protocol):
    """The single-item (and one batch) calls the engine depends on."""

    async def list_stages(self) -> list[PipelineStage]: ...

    async def list_applications(self, job_id: int) -> list[Application]: ...

    async def move_stage(self, application_id: int, stage_id: int, notes: str | None = None) -> Application | None: ...

    async def send_email(self, application_id: int, template_id: int) -> dict: ...

    async def send_form_invitation(
        self, application_id: int, form_id: int, custom_message: str | None = None
    ) -> dict: ...

    async def update_status(self, application_id: int, status: str, notes: str | None = None) -> Application | None: ...

    async def schedule_interview_batch(
        self,
        application_ids: list[int],
        start_time: datetime,
        interval_hours: float,
        location: str,
        notes: str | None = None,
        stage_id: int | None = None,
        time_range_label: str | None = None,
    ) -> dict: ...

    async def update_stage_order(self, stage_id: int, order: int) -> None: ...


class PipelineApiClient:
    """
    HTTP implementation of PipelineActions.

    Retries on connection errors and 429/5xx responses with exponential
    backoff; 4xx responses are mapped straight to CollaboratorError
    subclasses and never retried.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_factor: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.PIPELINE_API_BASE_URL).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.PIPELINE_API_MAX_RETRIES
        self.backoff_factor = (
            backoff_factor if backoff_factor is not None else settings.PIPELINE_API_BACKOFF_FACTOR
        )
        self._client = self._create_client(timeout or settings.PIPELINE_API_TIMEOUT, transport)

    def _create_client(self, timeout: float, transport: httpx.AsyncBaseTransport | None) -> httpx.AsyncClient:
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers=settings.pipeline_api_headers(),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < attempts:
                    backoff = self.backoff_factor * (2 ** (attempt - 1))
                    logger.debug(
                        "Pipeline API retrying request",
                        path=path,
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= attempts:
                    raise CollaboratorError(f"Pipeline API unreachable: {e}") from e
                backoff = self.backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Pipeline API request error, retrying",
                    path=path,
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Pipeline API retry loop exhausted")

    def _handle_response(self, response: httpx.Response, operation: str) -> Any:
        if response.is_success:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise CollaboratorError(f"Invalid response format from {operation}: {e}") from e

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {"error": response.text}
        if not isinstance(error_data, dict):
            error_data = {"error": str(error_data)}
        message = str(error_data.get("error") or error_data.get("message") or response.reason_phrase)

        logger.warning(
            f"Pipeline API {operation} failed",
            status_code=response.status_code,
            error_message=message,
        )

        error_cls = CollaboratorError
        if response.status_code == 409 or "already been sent" in message:
            error_cls = DuplicateInvitationError
        elif response.status_code == 403 or "Unauthorized" in message:
            error_cls = UnauthorizedError

        raise error_cls(
            message,
            status_code=response.status_code,
            error_code=error_data.get("code"),
            response_data=error_data,
        )

    @staticmethod
    def _application_or_none(data: Any) -> Application | None:
        """The service sometimes answers {success: true} instead of the record."""
        if isinstance(data, dict) and "id" in data:
            return Application.from_dict(data)
        return None

    # =================================================================
    # Reads (authoritative refresh)
    # =================================================================

    async def list_stages(self) -> list[PipelineStage]:
        response = await self._request_with_retry("GET", "/api/pipeline/stages")
        return [PipelineStage.from_dict(row) for row in self._handle_response(response, "list_stages")]

    async def list_applications(self, job_id: int) -> list[Application]:
        response = await self._request_with_retry("GET", f"/api/jobs/{job_id}/applications")
        rows = self._handle_response(response, "list_applications")
        return [Application.from_dict(row) for row in rows]

    async def ping(self) -> bool:
        response = await self._request_with_retry("GET", "/api/pipeline/stages")
        return response.is_success

    # =================================================================
    # Single-item actions
    # =================================================================

    async def move_stage(self, application_id: int, stage_id: int, notes: str | None = None) -> Application | None:
        body: dict[str, Any] = {"stageId": stage_id}
        if notes:
            body["notes"] = notes
        response = await self._request_with_retry(
            "PATCH", f"/api/applications/{application_id}/stage", json=body
        )
        return self._application_or_none(self._handle_response(response, "move_stage"))

    async def send_email(self, application_id: int, template_id: int) -> dict:
        response = await self._request_with_retry(
            "POST",
            f"/api/applications/{application_id}/send-email",
            json={"templateId": template_id},
        )
        return self._handle_response(response, "send_email")

    async def send_form_invitation(
        self, application_id: int, form_id: int, custom_message: str | None = None
    ) -> dict:
        body: dict[str, Any] = {"applicationId": application_id, "formId": form_id}
        if custom_message:
            body["customMessage"] = custom_message
        response = await self._request_with_retry("POST", "/api/forms/invitations", json=body)
        return self._handle_response(response, "send_form_invitation")

    async def update_status(self, application_id: int, status: str, notes: str | None = None) -> Application | None:
        body: dict[str, Any] = {"status": status}
        if notes is not None:
            body["notes"] = notes
        response = await self._request_with_retry(
            "PATCH", f"/api/applications/{application_id}/status", json=body
        )
        return self._application_or_none(self._handle_response(response, "update_status"))

    async def update_stage_order(self, stage_id: int, order: int) -> None:
        response = await self._request_with_retry(
            "PATCH", f"/api/pipeline/stages/{stage_id}", json={"order": order}
        )
        self._handle_response(response, "update_stage_order")

    # =================================================================
    # Server-side batch
    # =================================================================

    async def schedule_interview_batch(
        self,
        application_ids: list[int],
        start_time: datetime,
        interval_hours: float,
        location: str,
        notes: str | None = None,
        stage_id: int | None = None,
        time_range_label: str | None = None,
    ) -> dict:
        body: dict[str, Any] = {
            "applicationIds": list(application_ids),
            "start": start_time.isoformat(),
            "intervalHours": interval_hours,
            "location": location,
        }
        if time_range_label:
            body["timeRangeLabel"] = time_range_label
        if notes:
            body["notes"] = notes
        if stage_id is not None:
            body["stageId"] = stage_id
        response = await self._request_with_retry(
            "PATCH", "/api/applications/bulk/interview", json=body
        )
        return self._handle_response(response, "schedule_interview_batch")
