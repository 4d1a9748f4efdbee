"""Async client for the form service endpoints.

The client mirrors what the public form page does in a browser: fetch a form
definition, check the payload locally, then post it as multi-part data. A
failed call raises once with the server's message; nothing is retried and the
caller's payload is left untouched so the same call can be repeated.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from formbuilder.schema import normalize_form_definition
from formbuilder.submission import encode_submission
from formbuilder.validation import validate_submission

logger = logging.getLogger(__name__)


class FormServiceError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FormNotFoundError(FormServiceError):
    pass


class SubmissionValidationError(Exception):
    def __init__(self, labels: list[str]) -> None:
        super().__init__(
            f"Please fill in the following required fields: {', '.join(labels)}"
        )
        self.labels = labels


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or default)
    return default


class FormsClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def _request(self, method: str, url: str, default_error: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("%s %s failed", method, url)
            raise FormServiceError(str(exc) or default_error) from exc
        if response.status_code == 404:
            raise FormNotFoundError(_error_message(response, "Form not found"), 404)
        if response.is_error:
            raise FormServiceError(_error_message(response, default_error), response.status_code)
        return response

    async def fetch_form(self, form_id: str, access_code: str | None = None) -> dict[str, Any]:
        response = await self._request(
            "GET",
            f"/api/forms/{form_id}",
            "Failed to fetch form",
            params={"access_code": access_code} if access_code else None,
        )
        body = response.json()
        form = normalize_form_definition(body)
        form["access_mode"] = body.get("accessMode", "private")
        form["response_draft"] = body.get("responseDraft", "")
        return form

    async def create_form(
        self, form_data: dict[str, Any], publish_data: dict[str, Any]
    ) -> str:
        response = await self._request(
            "POST",
            "/api/forms",
            "Failed to publish form.",
            json={"formData": form_data, "publishData": publish_data},
        )
        return str(response.json()["formId"])

    async def submit_form(
        self,
        form: dict[str, Any],
        payload: dict[str, Any],
        access_code: str | None = None,
    ) -> dict[str, Any]:
        """Post ``payload`` for ``form``.

        Image values are raw bytes or ``(filename, content[, content_type])``
        tuples; the media type of raw bytes is detected from their content.
        """
        missing = validate_submission(form, payload)
        if missing:
            raise SubmissionValidationError(missing)

        data: dict[str, list[str]] = {}
        files: list[tuple[str, Any]] = []
        for key, value in encode_submission(form, payload):
            if isinstance(value, str):
                data.setdefault(key, []).append(value)
            else:
                files.append((key, value))
        if access_code:
            data["access_code"] = [access_code]

        response = await self._request(
            "POST",
            f"/api/forms/{form['id']}/submit",
            "Failed to submit form",
            data=data,
            files=files or None,
        )
        return response.json()
