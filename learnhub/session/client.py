"""Remote progress service as seen by the session engine."""
from __future__ import annotations

import logging
from typing import Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from learnhub.config import API_BASE_URL, HTTP_TIMEOUT_SECONDS, USER_HEADER
from learnhub.models import (
    AttemptCompleteRequest,
    AttemptSyncRequest,
    ProgressResponse,
    TestAssignment,
    TestAttempt,
)
from learnhub.session.errors import (
    AttemptsExhausted,
    Forbidden,
    NotFound,
    RemoteError,
    RemoteUnavailable,
)

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RemoteProgressClient(Protocol):
    """Capability handed to the session engine at construction."""

    async def get_assignment(self, assignment_id: str) -> TestAssignment: ...

    async def start_attempt(self, assignment_id: str) -> TestAttempt: ...

    async def sync_attempt(self, attempt_id: str, payload: AttemptSyncRequest) -> None: ...

    async def complete_attempt(
        self, attempt_id: str, payload: AttemptCompleteRequest
    ) -> TestAttempt: ...

    async def get_progress(self, assignment_id: str) -> ProgressResponse: ...

    async def complete_chapter(self, assignment_id: str, chapter_id: str) -> None: ...


_STATUS_ERRORS: dict[int, type[RemoteError]] = {
    403: Forbidden,
    404: NotFound,
    409: AttemptsExhausted,
}


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase


def _parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
    """Validate a success body; an unreadable one counts as a service failure."""
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteUnavailable(
            f"Unreadable {model.__name__} from {response.request.url}: {exc}",
            status_code=response.status_code,
        ) from exc


class HttpProgressClient:
    """
    httpx implementation of RemoteProgressClient.

    Pass ``client`` to reuse a configured ``httpx.AsyncClient`` (for
    example one mounted on an ASGI app); otherwise one is created and closed
    by ``aclose``.
    """

    def __init__(
        self,
        user_id: str,
        base_url: str = API_BASE_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._headers = {USER_HEADER: user_id}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "HttpProgressClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(
                method, url, headers=self._headers, **kwargs
            )
        except httpx.HTTPError as exc:
            raise RemoteUnavailable(f"{method} {url} failed: {exc}") from exc

        if response.is_success:
            return response

        detail = _error_detail(response)
        log.debug("%s %s -> %s: %s", method, url, response.status_code, detail)
        error_cls = _STATUS_ERRORS.get(response.status_code)
        if error_cls is not None:
            raise error_cls(detail)
        if response.status_code >= 500:
            raise RemoteUnavailable(detail, status_code=response.status_code)
        raise RemoteError(detail, status_code=response.status_code)

    async def get_assignment(self, assignment_id: str) -> TestAssignment:
        response = await self._request("GET", f"/api/assignments/{assignment_id}")
        return _parse(response, TestAssignment)

    async def start_attempt(self, assignment_id: str) -> TestAttempt:
        response = await self._request(
            "POST", f"/api/assignments/{assignment_id}/attempts"
        )
        return _parse(response, TestAttempt)

    async def sync_attempt(self, attempt_id: str, payload: AttemptSyncRequest) -> None:
        await self._request(
            "POST",
            f"/api/attempts/{attempt_id}/sync",
            json=payload.model_dump(mode="json", exclude_none=True),
        )

    async def complete_attempt(
        self, attempt_id: str, payload: AttemptCompleteRequest
    ) -> TestAttempt:
        response = await self._request(
            "POST",
            f"/api/attempts/{attempt_id}/complete",
            json=payload.model_dump(mode="json"),
        )
        return _parse(response, TestAttempt)

    async def get_progress(self, assignment_id: str) -> ProgressResponse:
        response = await self._request("GET", f"/api/progress/{assignment_id}")
        return _parse(response, ProgressResponse)

    async def complete_chapter(self, assignment_id: str, chapter_id: str) -> None:
        await self._request(
            "POST", f"/api/progress/{assignment_id}/chapters/{chapter_id}/complete"
        )
