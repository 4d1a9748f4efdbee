from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from formbuilder.auth import has_form_access
from formbuilder.schema import sanitize_form_output
from formbuilder.submission import decode_submission, store_submission
from formbuilder.utils import to_iso
from formbuilder.validation import find_invalid_fields, validate_submission
from formbuilder.wizard import publish_form

logger = logging.getLogger(__name__)
router = APIRouter()

ACCESS_CODE_HEADER = "X-Access-Code"


def api_error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse({"message": message, **extra}, status_code=status_code)


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/forms", tags=["api/forms"])
async def api_list_forms(request: Request) -> JSONResponse:
    request.app.state.auth_provider.require_admin(request)
    storage = request.app.state.storage
    forms = storage.forms.list_forms()
    return JSONResponse([sanitize_form_output(form) for form in forms])


@router.post("/api/forms", tags=["api/forms"])
async def api_create_form(request: Request) -> JSONResponse:
    request.app.state.auth_provider.require_admin(request)
    storage = request.app.state.storage
    try:
        payload = await request.json()
    except ValueError:
        return api_error(400, "Request body must be JSON")
    if not isinstance(payload, dict) or not isinstance(payload.get("formData"), dict):
        return api_error(400, "Missing required form data")
    publish_data = payload.get("publishData")
    if publish_data is not None and not isinstance(publish_data, dict):
        return api_error(400, "publishData must be an object")

    try:
        form_id, errors = publish_form(storage, payload["formData"], publish_data or {})
    except Exception:
        logger.exception("Failed to create form")
        return api_error(500, "Failed to create form")
    if errors:
        return api_error(400, errors[0], errors=errors)
    return JSONResponse(
        {"success": True, "message": "Form created successfully", "formId": form_id}
    )


@router.get("/api/forms/{form_id}", tags=["api/forms"])
async def api_get_form(request: Request, form_id: str) -> JSONResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id)
    if not form:
        return api_error(404, "Form not found")
    supplied = request.query_params.get("access_code") or request.headers.get(ACCESS_CODE_HEADER)
    if not has_form_access(form, supplied):
        return api_error(403, "A valid access code is required")
    return JSONResponse(sanitize_form_output(form))


@router.post("/api/forms/{form_id}/submit", tags=["api/submissions"])
async def api_submit_form(request: Request, form_id: str) -> JSONResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id)
    if not form:
        return api_error(404, "Form not found")
    if form.get("status") != "active":
        return api_error(400, "This form is not accepting responses")

    form_data = await request.form()
    access_code = form_data.get("access_code") or request.headers.get(ACCESS_CODE_HEADER)
    if not has_form_access(form, str(access_code) if access_code else None):
        return api_error(403, "A valid access code is required")

    payload = decode_submission(form, form_data)
    missing = validate_submission(form, payload)
    if missing:
        return api_error(
            400,
            f"Please fill in the following required fields: {', '.join(missing)}",
            fields=missing,
        )
    invalid = find_invalid_fields(form, payload)
    if invalid:
        return api_error(
            400,
            f"Please check the following fields: {', '.join(invalid)}",
            fields=invalid,
        )

    try:
        submission = await store_submission(request, form, payload)
    except HTTPException as exc:
        return api_error(exc.status_code, str(exc.detail))
    return JSONResponse(
        {
            "success": True,
            "submissionId": submission["id"],
            "message": form.get("response_draft") or "Form submitted successfully!",
        }
    )


@router.get("/api/forms/{form_id}/submissions", tags=["api/submissions"])
async def api_list_submissions(request: Request, form_id: str) -> JSONResponse:
    request.app.state.auth_provider.require_admin(request)
    storage = request.app.state.storage
    if not storage.forms.get_form(form_id):
        return api_error(404, "Form not found")
    submissions = storage.submissions.list_submissions(form_id)
    return JSONResponse(
        [
            {
                "id": item["id"],
                "formId": item["form_id"],
                "data": item.get("data_json", {}),
                "createdAt": to_iso(item["created_at"]),
            }
            for item in submissions
        ]
    )
