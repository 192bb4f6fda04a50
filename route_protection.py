"""Redirect signed-out browser navigation on protected sections to sign-in.

Only page navigations (``Accept: text/html``) are redirected. API calls to the
same prefixes continue to the auth dependency, which answers 401.
"""
from __future__ import annotations

from typing import Iterable
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from auth import bearer_token
from settings import get_settings

PROTECTED_PREFIXES = (
    "/dashboard",
    "/resume",
    "/interview",
    "/ai-cover-letter",
    "/onboarding",
)


def is_protected(path: str, prefixes: Iterable[str] = PROTECTED_PREFIXES) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


class ProtectedRouteMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, prefixes: Iterable[str] = PROTECTED_PREFIXES) -> None:  # type: ignore[override]
        super().__init__(app)
        self.prefixes = tuple(prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:  # type: ignore[override]
        settings = get_settings()
        if (
            settings.auth_enabled
            and is_protected(request.url.path, self.prefixes)
            and "text/html" in request.headers.get("accept", "")
            and bearer_token(request.headers.get("Authorization")) is None
        ):
            query = urlencode({"redirect_url": request.url.path})
            return RedirectResponse(url=f"{settings.sign_in_url}?{query}", status_code=307)

        return await call_next(request)
