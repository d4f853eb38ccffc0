"""Client-credentials bearer token cache with coalesced refresh."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from transfer_jobs_dashboard.domain.errors import AuthError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_DEFAULT_SAFETY_MARGIN_SECONDS = 300.0


@dataclass(slots=True, frozen=True)
class Credential:
    """Bearer token and the clock reading at which it must be refreshed."""

    token: str
    expires_at: float


class CredentialManager:
    """Obtain and cache an OAuth client-credentials access token.

    The cached token is reused while ``clock() < expires_at``. Concurrent
    callers that find no valid token share one refresh request and observe its
    outcome, success or failure.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        safety_margin_seconds: float = _DEFAULT_SAFETY_MARGIN_SECONDS,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        normalized_url = token_url.strip()
        if not normalized_url:
            raise ValueError("Token URL cannot be empty.")
        self._token_url = normalized_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._safety_margin_seconds = max(safety_margin_seconds, 0.0)
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._clock = clock

        self._credential: Credential | None = None
        self._refresh_task: asyncio.Task[Credential] | None = None

    @property
    def credential(self) -> Credential | None:
        """Return the cached credential, valid or not."""

        return self._credential

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it at most once concurrently."""

        credential = self._credential
        if credential is not None and self._clock() < credential.expires_at:
            return credential.token

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._refresh(), name="credential-refresh")
            task.add_done_callback(self._on_refresh_done)
            self._refresh_task = task

        credential = await asyncio.shield(task)
        return credential.token

    async def auth_headers(self) -> dict[str, str]:
        """Return headers for an authenticated JSON request."""

        token = await self.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def invalidate(self) -> None:
        """Forget the cached credential so the next call refreshes."""

        self._credential = None

    async def _refresh(self) -> Credential:
        logger.info("Requesting new access token from %s.", self._token_url)
        form = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as http_client:
                response = await http_client.post(
                    self._token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise AuthError(f"POST {self._token_url} failed: {exc}") from exc

        if not response.is_success:
            body = response.text.strip()
            raise AuthError(
                f"POST {self._token_url} failed: {response.status_code} "
                f"{body or '<no response body>'}",
                status_code=response.status_code,
                body=body,
            )

        credential = self._credential_from_response(response)
        self._credential = credential
        logger.info("Obtained access token from %s.", self._token_url)
        return credential

    def _credential_from_response(self, response: httpx.Response) -> Credential:
        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError(
                f"POST {self._token_url} returned invalid JSON.",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        if not isinstance(payload, dict):
            raise AuthError(
                f"POST {self._token_url} returned non-object JSON.",
                status_code=response.status_code,
                body=response.text,
            )

        token = payload.get("access_token")
        expires_in = payload.get("expires_in")
        if not isinstance(token, str) or not token:
            raise AuthError(
                f"POST {self._token_url} response missing access_token.",
                status_code=response.status_code,
                body=response.text,
            )
        if isinstance(expires_in, bool) or not isinstance(expires_in, int | float):
            raise AuthError(
                f"POST {self._token_url} response missing numeric expires_in.",
                status_code=response.status_code,
                body=response.text,
            )

        expires_at = self._clock() + float(expires_in) - self._safety_margin_seconds
        return Credential(token=token, expires_at=expires_at)

    def _on_refresh_done(self, task: asyncio.Task[Credential]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Waiters re-raise it; mark it retrieved for waiters that were cancelled.
            task.exception()


__all__ = ["Clock", "Credential", "CredentialManager"]
