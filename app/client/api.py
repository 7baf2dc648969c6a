import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.client.errors import RemoteError, SessionExpiredError
from app.schemas.courses import CourseOut
from app.schemas.enrollments import EnrollmentListResponse, EnrollmentOut

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class LmsApiClient:
    """Thin httpx wrapper over the learner-facing REST routes."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ):
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        self.token = token
        self.on_session_expired = on_session_expired

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "LmsApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        try:
            resp = self._client.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            raise RemoteError(f"Request failed: {exc}") from exc

        if resp.status_code == 401:
            self.token = None
            logger.info("Session expired on %s %s", method, path)
            if self.on_session_expired is not None:
                self.on_session_expired()
            raise SessionExpiredError("Session expired, please log in again")

        if resp.is_error:
            code, message = None, resp.text or resp.reason_phrase
            try:
                error = resp.json().get("error") or {}
                code = error.get("code")
                message = error.get("message") or message
            except (ValueError, AttributeError):
                pass
            raise RemoteError(message, status_code=resp.status_code, code=code)

        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteError(f"Malformed response from {method} {path}", status_code=resp.status_code) from exc

    def _parse(self, model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise RemoteError(f"Unexpected {model.__name__} payload: {exc.error_count()} invalid field(s)") from exc

    def get_course(self, course_id: str) -> CourseOut:
        return self._parse(CourseOut, self._request("GET", f"/courses/{course_id}"))

    def list_my_enrollments(self) -> list[EnrollmentOut]:
        return self._parse(EnrollmentListResponse, self._request("GET", "/enrollments/me")).enrollments

    def update_progress(self, enrollment_id: str, module_id: str, lesson_id: str) -> EnrollmentOut:
        data = self._request(
            "PUT",
            f"/enrollments/{enrollment_id}/progress",
            json={"module_id": module_id, "lesson_id": lesson_id},
        )
        return self._parse(EnrollmentOut, data)

    def submit_quiz(self, enrollment_id: str, module_id: str, answers: list[int]) -> EnrollmentOut:
        data = self._request(
            "PUT",
            f"/enrollments/{enrollment_id}/quiz",
            json={"module_id": module_id, "answers": answers},
        )
        return self._parse(EnrollmentOut, data)

    def submit_rating(self, enrollment_id: str, rating: int, review: str | None = None) -> EnrollmentOut:
        payload: dict[str, Any] = {"rating": rating}
        if review:
            payload["review"] = review
        data = self._request("PUT", f"/enrollments/{enrollment_id}/rating", json=payload)
        return self._parse(EnrollmentOut, data)
