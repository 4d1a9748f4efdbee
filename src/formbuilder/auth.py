from __future__ import annotations

import logging
import secrets
from typing import Any, Protocol

from fastapi import HTTPException, Request

from formbuilder.config import Settings

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"
ADMIN_TOKEN_COOKIE = "admin_token"


class AuthProvider(Protocol):
    def require_admin(self, request: Request) -> None: ...


class NoAuthProvider:
    def require_admin(self, request: Request) -> None:
        return None


class TokenAuthProvider:
    def __init__(self, token: str) -> None:
        self._token = token

    def require_admin(self, request: Request) -> None:
        supplied = request.headers.get(ADMIN_TOKEN_HEADER) or request.cookies.get(ADMIN_TOKEN_COOKIE) or ""
        if not self._token or not secrets.compare_digest(supplied, self._token):
            raise HTTPException(status_code=401, detail="Admin authentication required")


def get_auth_provider(settings: Settings) -> AuthProvider:
    if settings.auth_mode == "token":
        return TokenAuthProvider(settings.admin_token)
    return NoAuthProvider()


def has_form_access(form: dict[str, Any], supplied_code: str | None) -> bool:
    """Public forms are open; private ones need their access code."""
    if form.get("access_mode") != "private":
        return True
    expected = form.get("access_code") or ""
    if not expected or not supplied_code:
        return False
    if not secrets.compare_digest(supplied_code, expected):
        logger.warning("Wrong access code for form %s", form.get("id"))
        return False
    return True
