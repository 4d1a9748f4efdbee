from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from formbuilder.client import (
    FormNotFoundError,
    FormServiceError,
    FormsClient,
    SubmissionValidationError,
)
from formbuilder.schema import normalize_form_definition


def mock_client(handler) -> FormsClient:
    return FormsClient("http://forms.test", transport=httpx.MockTransport(handler))


def test_fetch_form_normalizes_definition() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/forms/f1"
        return httpx.Response(
            200,
            json={
                "id": "f1",
                "topic": "T",
                "description": "D",
                "categories": ["A"],
                "accessMode": "public",
                "responseDraft": "Done",
                "fields": [
                    {"id": "x", "label": "X", "type": "selection", "options": ["a"], "selections": []},
                    {"id": "y", "label": "Y", "type": "array", "arrayConfig": {"itemType": "number", "minItems": 1, "maxItems": 2}},
                ],
            },
        )

    form = asyncio.run(mock_client(handler).fetch_form("f1"))
    assert form["id"] == "f1"
    assert form["fields"][0]["selections"] == ["a"]
    assert form["fields"][1]["array_config"] == {"item_type": "number", "min_items": 1, "max_items": 2}
    assert form["access_mode"] == "public"
    assert form["response_draft"] == "Done"


def test_fetch_missing_form() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Form not found"})

    with pytest.raises(FormNotFoundError) as excinfo:
        asyncio.run(mock_client(handler).fetch_form("nope"))
    assert excinfo.value.status_code == 404


def test_submit_checks_required_fields_before_sending(feedback_form_data) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    form = {**normalize_form_definition(feedback_form_data), "id": "f1"}
    with pytest.raises(SubmissionValidationError) as excinfo:
        asyncio.run(mock_client(handler).submit_form(form, {"name": ""}))
    assert excinfo.value.labels == ["Name"]
    assert calls == []


def test_submit_posts_repeated_keys(feedback_form_data) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(parse_qs(request.content.decode()))
        return httpx.Response(200, json={"success": True, "submissionId": "s1", "message": "ok"})

    form = {**normalize_form_definition(feedback_form_data), "id": "f1"}
    payload = {"name": "Ada", "tags": ["a", "b"], "agree": False}
    result = asyncio.run(mock_client(handler).submit_form(form, payload, access_code="c0de"))
    assert result["submissionId"] == "s1"
    assert seen == {"name": ["Ada"], "agree": ["false"], "tags": ["a", "b"], "access_code": ["c0de"]}
    assert payload == {"name": "Ada", "tags": ["a", "b"], "agree": False}


def test_server_error_message_is_surfaced(feedback_form_data) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "This form is not accepting responses"})

    form = {**normalize_form_definition(feedback_form_data), "id": "f1"}
    with pytest.raises(FormServiceError) as excinfo:
        asyncio.run(mock_client(handler).submit_form(form, {"name": "Ada"}))
    assert excinfo.value.message == "This form is not accepting responses"
    assert excinfo.value.status_code == 400


def test_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FormServiceError) as excinfo:
        asyncio.run(mock_client(handler).fetch_form("f1"))
    assert excinfo.value.status_code is None


def test_round_trip_against_app(app, feedback_form_data, public_settings) -> None:
    client = FormsClient("http://testserver", transport=httpx.ASGITransport(app=app))

    async def scenario():
        form_id = await client.create_form(feedback_form_data, public_settings)
        form = await client.fetch_form(form_id)
        result = await client.submit_form(form, {"name": "Ada", "tags": ["x"], "agree": True})
        return form_id, result

    form_id, result = asyncio.run(scenario())
    assert result["success"] is True
    assert result["message"] == "Thanks!"
    submissions = app.state.storage.submissions.list_submissions(form_id)
    assert submissions[0]["data_json"] == {"name": "Ada", "tags": ["x"], "agree": True}


def test_raw_image_bytes_are_sent_as_images(app, image_form_data) -> None:
    client = FormsClient("http://testserver", transport=httpx.ASGITransport(app=app))
    png = b"\x89PNG\r\n\x1a\n0000"

    async def scenario():
        form_id = await client.create_form(image_form_data, {"share_setting": "public"})
        form = await client.fetch_form(form_id)
        await client.submit_form(form, {"pic": [png]})
        return form_id

    form_id = asyncio.run(scenario())
    storage = app.state.storage
    [submission] = storage.submissions.list_submissions(form_id)
    [file_id] = submission["data_json"]["pic"]
    meta = storage.files.get_file(file_id)
    assert meta["content_type"] == "image/png"
    assert meta["original_name"] == "image-1.png"


def test_fetch_private_form_with_access_code(app, image_form_data) -> None:
    client = FormsClient("http://testserver", transport=httpx.ASGITransport(app=app))
    publish_data = {"share_setting": "private", "access_code": "s3cret"}

    async def scenario():
        form_id = await client.create_form(image_form_data, publish_data)
        with pytest.raises(FormServiceError) as excinfo:
            await client.fetch_form(form_id)
        assert excinfo.value.status_code == 403
        return await client.fetch_form(form_id, access_code="s3cret")

    form = asyncio.run(scenario())
    assert form["topic"] == "Photos"
    assert form["access_mode"] == "private"
