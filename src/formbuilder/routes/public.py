from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse

from formbuilder.auth import has_form_access
from formbuilder.config import PENDING_SUFFIX
from formbuilder.renderer import FormSession
from formbuilder.submission import decode_submission, store_submission
from formbuilder.validation import find_invalid_fields

router = APIRouter()


def access_cookie_name(form_id: str) -> str:
    return f"form_access_{form_id}"


def render_form_page(
    request: Request,
    form: dict[str, Any],
    session: FormSession,
    *,
    errors: list[str] | None = None,
    warnings: list[str] | None = None,
    inactive: bool = False,
    status_code: int = 200,
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "form_public.html",
        {
            "form": form,
            "groups": session.render(),
            "errors": errors or [],
            "warnings": warnings or [],
            "inactive": inactive,
        },
        status_code=status_code,
    )


def render_not_found(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(request, "not_found.html", {}, status_code=404)


def render_access_page(
    request: Request, form: dict[str, Any], errors: list[str] | None = None, status_code: int = 200
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "form_access.html",
        {"form": form, "errors": errors or []},
        status_code=status_code,
    )


def parse_action(action: str) -> tuple[str, str, int | None]:
    parts = action.split(":")
    name = parts[0]
    field_id = parts[1] if len(parts) > 1 else ""
    index = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else None
    return name, field_id, index


@router.get("/f/{form_id}", response_class=HTMLResponse, tags=["public"])
async def public_form(request: Request, form_id: str) -> HTMLResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id)
    if not form:
        return render_not_found(request)
    if not has_form_access(form, request.cookies.get(access_cookie_name(form_id))):
        return render_access_page(request, form)
    inactive = form.get("status") != "active"
    errors = ["This form is not accepting responses"] if inactive else []
    return render_form_page(request, form, FormSession(form), errors=errors, inactive=inactive)


@router.post("/f/{form_id}/access", response_class=HTMLResponse, tags=["public"])
async def unlock_form(request: Request, form_id: str) -> HTMLResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id)
    if not form:
        return render_not_found(request)
    form_data = await request.form()
    code = str(form_data.get("access_code", "")).strip()
    if not has_form_access(form, code):
        return render_access_page(request, form, ["The access code is not correct"], status_code=403)
    response = RedirectResponse(f"/f/{form_id}", status_code=303)
    response.set_cookie(access_cookie_name(form_id), code, httponly=True, samesite="lax")
    return response


@router.post("/f/{form_id}", response_class=HTMLResponse, tags=["public"])
async def submit_form(request: Request, form_id: str) -> HTMLResponse:
    storage = request.app.state.storage
    templates = request.app.state.templates
    form = storage.forms.get_form(form_id)
    if not form:
        return render_not_found(request)
    if not has_form_access(form, request.cookies.get(access_cookie_name(form_id))):
        return render_access_page(request, form, status_code=403)
    if form.get("status") != "active":
        return render_form_page(
            request,
            form,
            FormSession(form),
            errors=["This form is not accepting responses"],
            inactive=True,
        )

    form_data = await request.form()
    payload = decode_submission(form, form_data)
    pending = {
        field["id"]: str(form_data.get(f"{field['id']}{PENDING_SUFFIX}") or "")
        for field in form["fields"]
        if field.get("type") == "array"
    }
    session = FormSession(form, payload, pending)
    action, field_id, index = parse_action(str(form_data.get("action") or "submit"))

    if action in {"add", "remove"}:
        try:
            if action == "add":
                warning = session.append_item(field_id)
                return render_form_page(
                    request, form, session, warnings=[warning] if warning else []
                )
            if index is not None:
                session.remove_item(field_id, index)
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail="Unknown array field") from exc
        return render_form_page(request, form, session)

    if action == "reset":
        session.reset()
        return render_form_page(request, form, session)

    missing = session.missing_fields()
    if missing:
        return render_form_page(
            request,
            form,
            session,
            errors=[f"Please fill in the following required fields: {', '.join(missing)}"],
        )
    invalid = find_invalid_fields(form, session.payload)
    if invalid:
        return render_form_page(
            request,
            form,
            session,
            errors=[f"Please check the following fields: {', '.join(invalid)}"],
        )

    try:
        await store_submission(request, form, session.payload)
    except HTTPException as exc:
        return render_form_page(
            request, form, session, errors=[str(exc.detail)], status_code=exc.status_code
        )
    return templates.TemplateResponse(
        request,
        "submission_done.html",
        {"form": form, "message": form.get("response_draft") or "Form submitted successfully!"},
    )


@router.get("/files/{file_id}", tags=["public"])
async def download_file(request: Request, file_id: str) -> FileResponse:
    storage = request.app.state.storage
    settings = request.app.state.settings
    file_meta = storage.files.get_file(file_id)
    if not file_meta:
        raise HTTPException(status_code=404, detail="File not found")
    path = Path(file_meta["stored_path"]).resolve()
    if settings.upload_dir.resolve() not in path.parents:
        raise HTTPException(status_code=400, detail="Invalid file path")
    return FileResponse(path, filename=file_meta.get("original_name") or file_id)
