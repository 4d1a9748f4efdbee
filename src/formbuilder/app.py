from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from formbuilder.auth import get_auth_provider
from formbuilder.config import BASE_DIR, Settings, ensure_dirs
from formbuilder.routes.admin import router as admin_router
from formbuilder.routes.api import router as api_router
from formbuilder.routes.public import router as public_router
from formbuilder.storage import init_drafts, init_storage


def format_dt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.astimezone().strftime("%Y-%m-%d %H:%M")
    return str(value or "")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    ensure_dirs(settings)
    storage = init_storage(settings)
    drafts = init_drafts(settings)
    auth = get_auth_provider(settings)

    app = FastAPI(
        title="formbuilder",
        openapi_tags=[
            {"name": "admin", "description": "Form list and authoring wizard (HTML)"},
            {"name": "public", "description": "Public forms (HTML)"},
            {"name": "api/forms", "description": "REST API: forms"},
            {"name": "api/submissions", "description": "REST API: submissions"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.storage = storage
    app.state.drafts = drafts
    app.state.settings = settings
    app.state.auth_provider = auth

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    templates.env.globals["format_dt"] = format_dt
    app.state.templates = templates

    app.include_router(admin_router)
    app.include_router(public_router)
    app.include_router(api_router)

    return app
