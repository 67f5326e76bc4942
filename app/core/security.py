from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from app.core.config import settings


def _matches(candidate: str | None, expected: str | None) -> bool:
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def is_admin(api_key: str | None) -> bool:
    return _matches(api_key, settings.admin_api_key)


def is_authenticated(api_key: str | None) -> bool:
    """Recruiters and admins see unmasked resumes; everyone else is anonymous."""
    return _matches(api_key, settings.recruiter_api_key) or is_admin(api_key)


def optional_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> str | None:
    return x_api_key


def require_recruiter(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> str:
    if not is_authenticated(x_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid recruiter API key.",
        )
    return x_api_key or ""


def require_admin(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> str:
    if not is_authenticated(x_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid API key.",
        )
    if not is_admin(x_api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access is required.",
        )
    return x_api_key or ""
