from typing import Optional
from uuid import UUID

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from core.settings import settings

bearer_scheme = HTTPBearer(auto_error=False)


def verify_token(token: Optional[str]) -> Optional[UUID]:
    """Resolve a bearer token issued by the auth provider to the caller's user id."""
    if not token or token.strip() == "":
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return UUID(str(subject))
    except ValueError:
        return None
