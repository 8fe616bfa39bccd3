"""
Caller context for the profile and export endpoints.

Tokens are issued upstream. This module only verifies them and reads the
subject, email and group claims.
"""
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ..config import get_settings
from .errors import AuthError
from .profile_store import UserSession

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

SESSION = "session"
API_KEY = "api_key"
TEST = "test"


@dataclass
class CallerContext:
    """Who is asking: an authenticated session, an API-key client or the test path."""
    kind: str
    user_id: str = ""
    email: str = ""
    roles: List[str] = field(default_factory=list)
    id_token: Optional[str] = None

    @property
    def is_trusted(self) -> bool:
        """API-key and test callers were screened at the network boundary."""
        return self.kind in (API_KEY, TEST)


def parse_groups(groups: Any) -> List[str]:
    """Group claim as a list; issuers send either a list or a comma string."""
    if isinstance(groups, str):
        return [group.strip() for group in groups.split(",") if group.strip()]
    if isinstance(groups, list):
        return [str(group) for group in groups]
    return []


def decode_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"verify_aud": False},
        )
    except JWTError as e:
        raise AuthError(f"Could not validate credentials: {e}")


def caller_from_token(token: str) -> CallerContext:
    claims = decode_token(token)
    user_id = claims.get("sub") or claims.get("userId")
    if not user_id:
        raise AuthError("Token carries no subject")
    return CallerContext(
        kind=SESSION,
        user_id=str(user_id),
        email=claims.get("email") or "",
        roles=parse_groups(claims.get("cognito:groups") or claims.get("groups")),
        id_token=token,
    )


def check_api_key(x_api_key: Optional[str]) -> bool:
    """True for an accepted key header, False when none was sent."""
    if not x_api_key:
        return False
    expected = get_settings().export_api_key
    # No configured key means no key is valid
    if not expected or not secrets.compare_digest(x_api_key.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError("Invalid API key")
    return True


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ========== Dependencies ==========

async def get_current_session(token: Optional[str] = Depends(oauth2_scheme)) -> UserSession:
    """The authenticated user a ProfileStore acts for."""
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        caller = caller_from_token(token)
    except AuthError as e:
        raise _unauthorized(e.message)
    return UserSession(user_id=caller.user_id, email=caller.email, id_token=token)


async def get_export_caller(
    token: Optional[str] = Depends(oauth2_scheme),
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> CallerContext:
    try:
        if check_api_key(x_api_key):
            return CallerContext(kind=API_KEY)
    except AuthError as e:
        # A rejected key still lets a bearer token through
        if not token:
            raise _unauthorized(e.message)

    try:
        if not token:
            raise AuthError("Not authenticated")
        return caller_from_token(token)
    except AuthError as e:
        raise _unauthorized(e.message)
