"""HTTP client for the transfer-orchestration jobs and transfers endpoints."""

from __future__ import annotations

import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from transfer_jobs_dashboard.domain.errors import ActionError, DashboardError, FetchError
from transfer_jobs_dashboard.domain.job_models import Job, RemoteModel, Transfer
from transfer_jobs_dashboard.domain.ports import TokenProvider

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=RemoteModel)

_IN_PROGRESS_STATE = "IN_PROGRESS"


class OrchestrationClient:
    """Authenticated wrapper around the orchestration REST API."""

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        api_prefix: str = "/v1",
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = self._normalize_base_url(base_url, api_prefix)
        self._token_provider = token_provider
        self._http = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def close(self) -> None:
        """Release underlying HTTP resources."""

        await self._http.aclose()

    async def search_jobs(self, limit: int) -> list[Job]:
        """Call `POST /jobs/search` sorted by last activity, newest first."""

        response = await self._request(
            "POST",
            "/jobs/search",
            error_type=FetchError,
            json={"sortBy": "lastActivity", "sortOrder": "desc", "limit": limit},
        )
        payload = self._parse_json_object(response, FetchError)
        return self._parse_items(payload, Job, response, FetchError)

    async def list_active_transfers(self, job_id: str) -> list[Transfer]:
        """Call `GET /jobs/{jobId}/transfers?state=IN_PROGRESS`."""

        response = await self._request(
            "GET",
            f"/jobs/{self._quote(job_id)}/transfers",
            error_type=FetchError,
            params={"state": _IN_PROGRESS_STATE},
        )
        payload = self._parse_json_object(response, FetchError)
        return self._parse_items(payload, Transfer, response, FetchError)

    async def get_transfer(self, job_id: str) -> Transfer | None:
        """Call `GET /transfers/{jobId}` and return its first item."""

        response = await self._request(
            "GET",
            f"/transfers/{self._quote(job_id)}",
            error_type=FetchError,
        )
        payload = self._parse_json_object(response, FetchError)
        transfers = self._parse_items(payload, Transfer, response, FetchError)
        return transfers[0] if transfers else None

    async def get_job(self, job_id: str) -> Job:
        """Call `GET /jobs/{jobId}`."""

        response = await self._request(
            "GET",
            f"/jobs/{self._quote(job_id)}",
            error_type=ActionError,
        )
        payload = self._parse_json_object(response, ActionError)
        try:
            return Job.model_validate(payload)
        except ValidationError as exc:
            raise ActionError(
                f"{response.request.method} {response.request.url} returned an invalid job."
            ) from exc

    async def patch_job(self, job_id: str, body: dict[str, Any]) -> None:
        """Call `PATCH /jobs/{jobId}`."""

        await self._request(
            "PATCH",
            f"/jobs/{self._quote(job_id)}",
            error_type=ActionError,
            json=body,
        )

    async def delete_job(self, job_id: str) -> None:
        """Call `DELETE /jobs/{jobId}`."""

        await self._request(
            "DELETE",
            f"/jobs/{self._quote(job_id)}",
            error_type=ActionError,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error_type: type[DashboardError],
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = await self._token_provider.auth_headers()
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise error_type(f"{method} {url} failed: {exc}") from exc

        if response.status_code == 401:
            self._token_provider.invalidate()
        if not response.is_success:
            raise error_type(
                f"{method} {url} failed: {response.status_code} "
                f"{self._detail_from_response(response)}"
            )
        return response

    def _parse_json_object(
        self,
        response: httpx.Response,
        error_type: type[DashboardError],
    ) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise error_type(
                f"{response.request.method} {response.request.url} returned invalid JSON."
            ) from exc
        if not isinstance(payload, dict):
            raise error_type(
                f"{response.request.method} {response.request.url} returned non-object JSON."
            )
        return payload

    def _parse_items(
        self,
        payload: dict[str, Any],
        model: type[ModelT],
        response: httpx.Response,
        error_type: type[DashboardError],
    ) -> list[ModelT]:
        raw_items = payload.get("items")
        if raw_items is None:
            return []
        if not isinstance(raw_items, list):
            raise error_type(
                f"{response.request.method} {response.request.url} response items is not a list."
            )

        items: list[ModelT] = []
        for raw_item in raw_items:
            try:
                items.append(model.model_validate(raw_item))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed %s item from %s: %s",
                    model.__name__,
                    response.request.url,
                    exc.errors(include_url=False),
                )
        return items

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            for key in ("message", "detail", "error_description", "error"):
                detail = payload.get(key)
                if isinstance(detail, str) and detail:
                    return detail
        return str(payload)

    def _quote(self, value: str) -> str:
        return quote(value, safe="")

    def _normalize_base_url(self, base_url: str, api_prefix: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise ValueError("Orchestration API base URL cannot be empty.")
        prefix = api_prefix.strip().rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = f"/{prefix}"
        return f"{normalized}{prefix}"


__all__ = ["OrchestrationClient"]
