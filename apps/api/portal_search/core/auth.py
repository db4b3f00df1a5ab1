from typing import Optional

from jose import JWTError, jwt

from portal_search.core.config import get_settings


def decode_access_token(token: str) -> Optional[str]:
    """Return the token subject (user id) or None when the token is invalid or expired."""
    s = get_settings()
    try:
        payload = jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])
        sub = payload.get("sub")
        return str(sub) if sub is not None else None
    except JWTError:
        return None


def create_access_token(subject: str) -> str:
    s = get_settings()
    return jwt.encode({"sub": subject}, s.jwt_secret, algorithm=s.jwt_algorithm)
