from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from config import settings
from errors import Forbidden, Unauthorized
from security import issue_token, read_token

ADMIN_USER_ID = "admin"


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_admin: bool = False

    @property
    def is_account(self) -> bool:
        return not self.is_admin


def issue_user_token(user_id: str) -> str:
    return issue_token({"userId": user_id, "isAdmin": False})


def issue_admin_token() -> str:
    return issue_token({"userId": ADMIN_USER_ID, "isAdmin": True})


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def identity_from_token(token: str) -> Optional[Identity]:
    ttl = max(settings.user_token_ttl_seconds, settings.admin_token_ttl_seconds)
    claims = read_token(token, ttl)
    if not claims or not claims.get("userId"):
        return None
    if claims.get("isAdmin") is True:
        if read_token(token, settings.admin_token_ttl_seconds) is None:
            return None
        return Identity(user_id=str(claims["userId"]), is_admin=True)
    return Identity(user_id=str(claims["userId"]))


async def get_optional_identity(
    authorization: str | None = Header(default=None, convert_underscores=False),
) -> Optional[Identity]:
    token = _bearer_token(authorization)
    if not token:
        return None
    return identity_from_token(token)


async def get_current_identity(
    authorization: str | None = Header(default=None, convert_underscores=False),
) -> Identity:
    token = _bearer_token(authorization)
    if not token:
        raise Unauthorized("No token provided")
    identity = identity_from_token(token)
    if identity is None:
        raise Unauthorized("Invalid or expired token")
    return identity


async def require_admin(
    authorization: str | None = Header(default=None, convert_underscores=False),
) -> Identity:
    token = _bearer_token(authorization)
    if not token:
        raise Unauthorized("No admin token provided")
    identity = identity_from_token(token)
    if identity is None:
        raise Unauthorized("Invalid token")
    if not identity.is_admin:
        raise Forbidden("Not an admin")
    return identity
