from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from formbuilder.config import ARRAY_ITEM_TYPES, FIELD_TYPES
from formbuilder.grouping import group_fields
from formbuilder.renderer import render_controls
from formbuilder.schema import validate_form_definition
from formbuilder.storage import delete_form
from formbuilder.utils import new_session_id
from formbuilder.wizard import FormWizard

logger = logging.getLogger(__name__)
router = APIRouter()

DRAFT_COOKIE = "draft_session"


def admin_guard(request: Request) -> None:
    request.app.state.auth_provider.require_admin(request)


def get_wizard(request: Request, _: Any = Depends(admin_guard)) -> FormWizard:
    session_id = request.cookies.get(DRAFT_COOKIE) or new_session_id()
    request.state.draft_session = session_id
    return FormWizard(request.app.state.drafts.for_session(session_id))


def keep_session(request: Request, response: Response) -> Response:
    session_id = request.state.draft_session
    if request.cookies.get(DRAFT_COOKIE) != session_id:
        response.set_cookie(DRAFT_COOKIE, session_id, httponly=True, samesite="lax")
    return response


def back_to(request: Request, step: str) -> Response:
    return keep_session(request, RedirectResponse(f"/admin/wizard/{step}", status_code=303))


def render_step(
    request: Request,
    wizard: FormWizard,
    step: str,
    errors: list[str] | None = None,
    status_code: int = 200,
) -> Response:
    templates = request.app.state.templates
    form_data = wizard.form_data
    response = templates.TemplateResponse(
        request,
        f"wizard_{step}.html",
        {
            "step": step,
            "form_data": form_data,
            "publish_data": wizard.publish_data,
            "groups": group_fields(form_data),
            "preview": render_controls(form_data, {}) if step == "publish" else [],
            "field_types": FIELD_TYPES,
            "array_item_types": ARRAY_ITEM_TYPES,
            "errors": errors or [],
        },
        status_code=status_code,
    )
    return keep_session(request, response)


def field_or_400(index: int, change: Any) -> None:
    try:
        change()
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=f"Field {index + 1} does not exist") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def change_status(request: Request, form_id: str, status: str) -> None:
    try:
        request.app.state.storage.forms.set_status(form_id, status)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Form not found") from exc
    logger.info("Form %s is now %s", form_id, status)


@router.get("/", response_class=HTMLResponse, tags=["admin"])
async def home(request: Request) -> Response:
    return RedirectResponse("/admin/forms")


@router.get("/admin/forms", response_class=HTMLResponse, tags=["admin"])
async def list_forms(request: Request, _: Any = Depends(admin_guard)) -> Response:
    storage = request.app.state.storage
    templates = request.app.state.templates
    forms = storage.forms.list_forms()
    return templates.TemplateResponse(request, "admin_forms.html", {"forms": forms})


@router.post("/admin/forms/{form_id}/publish", tags=["admin"])
async def activate_form(request: Request, form_id: str, _: Any = Depends(admin_guard)) -> Response:
    change_status(request, form_id, "active")
    return RedirectResponse("/admin/forms", status_code=303)


@router.post("/admin/forms/{form_id}/stop", tags=["admin"])
async def stop_form(request: Request, form_id: str, _: Any = Depends(admin_guard)) -> Response:
    change_status(request, form_id, "inactive")
    return RedirectResponse("/admin/forms", status_code=303)


@router.post("/admin/forms/{form_id}/delete", tags=["admin"])
async def remove_form(request: Request, form_id: str, _: Any = Depends(admin_guard)) -> Response:
    delete_form(request.app.state.storage, form_id)
    return RedirectResponse("/admin/forms", status_code=303)


@router.get("/admin/wizard", tags=["admin"])
async def wizard_start(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    return back_to(request, "generate")


@router.get("/admin/wizard/generate", response_class=HTMLResponse, tags=["admin"])
async def wizard_generate(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    return render_step(request, wizard, "generate")


@router.post("/admin/wizard/details", tags=["admin"])
async def wizard_details(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    form_data = await request.form()
    wizard.set_details(str(form_data.get("topic", "")), str(form_data.get("description", "")))
    return back_to(request, "generate")


@router.post("/admin/wizard/categories", tags=["admin"])
async def wizard_add_category(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    form_data = await request.form()
    wizard.add_category(str(form_data.get("name", "")))
    return back_to(request, "generate")


@router.post("/admin/wizard/categories/delete", tags=["admin"])
async def wizard_remove_category(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    form_data = await request.form()
    wizard.remove_category(str(form_data.get("name", "")))
    return back_to(request, "generate")


@router.post("/admin/wizard/fields", tags=["admin"])
async def wizard_add_field(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    wizard.add_field()
    return back_to(request, "generate")


@router.post("/admin/wizard/fields/{index}", tags=["admin"])
async def wizard_update_field(
    request: Request, index: int, wizard: FormWizard = Depends(get_wizard)
) -> Response:
    form_data = await request.form()

    def change() -> None:
        wizard.update_field(
            index,
            label=str(form_data.get("label", "")),
            type=str(form_data.get("type") or "text"),
            category=str(form_data.get("category", "")),
            required=bool(form_data.get("required")),
        )
        for key in ("item_type", "min_items", "max_items"):
            if key in form_data:
                wizard.update_array_config(index, key, str(form_data.get(key)))

    field_or_400(index, change)
    return back_to(request, "generate")


@router.post("/admin/wizard/fields/{index}/delete", tags=["admin"])
async def wizard_remove_field(
    request: Request, index: int, wizard: FormWizard = Depends(get_wizard)
) -> Response:
    field_or_400(index, lambda: wizard.remove_field(index))
    return back_to(request, "generate")


@router.post("/admin/wizard/fields/{index}/options", tags=["admin"])
async def wizard_add_option(
    request: Request, index: int, wizard: FormWizard = Depends(get_wizard)
) -> Response:
    form_data = await request.form()
    field_or_400(index, lambda: wizard.add_option(index, str(form_data.get("option", ""))))
    return back_to(request, "generate")


@router.post("/admin/wizard/fields/{index}/options/delete", tags=["admin"])
async def wizard_remove_option(
    request: Request, index: int, wizard: FormWizard = Depends(get_wizard)
) -> Response:
    form_data = await request.form()
    field_or_400(index, lambda: wizard.remove_option(index, str(form_data.get("option", ""))))
    return back_to(request, "generate")


@router.get("/admin/wizard/review", response_class=HTMLResponse, tags=["admin"])
async def wizard_review(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    return render_step(request, wizard, "review", validate_form_definition(wizard.form_data))


@router.get("/admin/wizard/publish", response_class=HTMLResponse, tags=["admin"])
async def wizard_publish_page(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    return render_step(request, wizard, "publish")


@router.post("/admin/wizard/publish/settings", tags=["admin"])
async def wizard_publish_settings(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    form_data = await request.form()
    wizard.update_publish_settings(
        share_setting=str(form_data.get("share_setting", "private")),
        access_code=str(form_data.get("access_code", "")),
        response_draft=str(form_data.get("response_draft", "")),
    )
    return back_to(request, "publish")


@router.post("/admin/wizard/publish", tags=["admin"])
async def wizard_publish(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    form_id, errors = wizard.publish(request.app.state.storage)
    if errors:
        return render_step(request, wizard, "publish", errors, status_code=400)
    templates = request.app.state.templates
    response = templates.TemplateResponse(
        request, "wizard_published.html", {"form_id": form_id}
    )
    return keep_session(request, response)


@router.post("/admin/wizard/reset", tags=["admin"])
async def wizard_reset(request: Request, wizard: FormWizard = Depends(get_wizard)) -> Response:
    wizard.reset()
    return back_to(request, "generate")
