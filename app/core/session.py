from __future__ import annotations

import secrets

from fastapi import Request, Response

from app.core.config import settings

SESSION_ID_ENTROPY_BYTES = 18


def get_session_id(request: Request, response: Response) -> str:
    """Identify the browser session, issuing a cookie on first contact."""
    session_id = request.cookies.get(settings.session_cookie_name) or request.headers.get("x-session-id")
    session_id = (session_id or "").strip()
    if session_id:
        return session_id

    session_id = secrets.token_urlsafe(SESSION_ID_ENTROPY_BYTES)
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        samesite="lax",
    )
    return session_id
