"""Request limits for the search endpoint."""

from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from portal_search.core.auth import decode_access_token
from portal_search.core.config import get_settings


def _bearer_user_id(request: Request) -> Optional[str]:
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return decode_access_token(token)


def rate_limit_key(request: Request) -> str:
    """Authenticated callers share a budget per user; anonymous ones per client address."""
    user_id = _bearer_user_id(request)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=rate_limit_key, enabled=get_settings().rate_limit_enabled)
