"""Async client for the Operator REST API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .models import HealthResponse, LaunchTicketRequest, LaunchTicketResponse

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/v1/health"


class OperatorApiError(RuntimeError):
    """Raised when the API is unreachable or answers with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class OperatorApiClient:
    """Talk to a running Operator instance.

    Calls are never retried: an unavailable API is a normal condition that
    callers handle by working locally.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        probe_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=self._transport)

    async def health(self) -> HealthResponse:
        try:
            async with self._client(self._probe_timeout) as client:
                response = await client.get(HEALTH_PATH)
        except httpx.HTTPError as exc:
            raise OperatorApiError(f"Operator API not available: {exc}") from exc

        if not response.is_success:
            raise OperatorApiError("Operator API not available", status_code=response.status_code)
        try:
            return HealthResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            # Any 2xx counts as alive even if the body is unexpected.
            return HealthResponse(status="ok")

    async def launch_ticket(self, ticket_id: str, request: LaunchTicketRequest) -> LaunchTicketResponse:
        """Claim and prepare a ticket, returning the command to run in a terminal."""

        path = f"/api/v1/tickets/{quote(ticket_id, safe='')}/launch"
        try:
            async with self._client(self._timeout) as client:
                response = await client.post(path, json=request.model_dump())
        except httpx.HTTPError as exc:
            raise OperatorApiError(f"Operator API unreachable: {exc}") from exc

        if not response.is_success:
            raise OperatorApiError(_error_message(response), status_code=response.status_code)

        try:
            payload = LaunchTicketResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OperatorApiError(f"Malformed launch response: {exc}", status_code=response.status_code) from exc

        logger.debug(
            "Operator launch accepted",
            extra={"ticket_id": payload.ticket_id, "terminal": payload.terminal_name},
        )
        return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"HTTP {response.status_code}: {response.reason_phrase}"


__all__ = ["HEALTH_PATH", "OperatorApiClient", "OperatorApiError"]
