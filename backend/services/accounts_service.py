import asyncio
import logging
import re
from typing import Any, Dict, Optional, Tuple

from auth import Identity, issue_admin_token, issue_user_token
from errors import Conflict, Unauthorized, Unconfigured, ValidationError
from lifecycle import new_user_id, normalize_phone
from repositories.base import UserRepository
from schemas import SignupRequest, UserPublic
from security import hash_password, verify_password

logger = logging.getLogger("datahub")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def _format_user(row: Dict[str, Any]) -> UserPublic:
    return UserPublic(
        id=row["id"],
        email=row["email"],
        name=row.get("name"),
        phone=row["phone"],
    )


class AccountService:
    def __init__(self, users: UserRepository, admin_password_hash: Optional[str] = None) -> None:
        self._users = users
        self._admin_password_hash = admin_password_hash

    async def signup(self, payload: SignupRequest) -> Tuple[str, UserPublic]:
        if not payload.email or not payload.password or not payload.name or not payload.phone:
            raise ValidationError("Email, password, name and phone are required")
        email = payload.email.strip().lower()
        if not EMAIL_PATTERN.fullmatch(email):
            raise ValidationError("Invalid email address")
        if len(payload.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        phone = normalize_phone(payload.phone)
        if not phone:
            raise ValidationError("Valid Ghana phone number (0XXXXXXXXX) required")

        if await asyncio.to_thread(self._users.fetch_by_email, email):
            raise Conflict("An account with this email already exists")
        if await asyncio.to_thread(self._users.fetch_by_phone, phone):
            raise Conflict("An account with this phone number already exists")

        password_hash = await asyncio.to_thread(hash_password, payload.password)
        row = await asyncio.to_thread(
            self._users.insert,
            {
                "id": new_user_id(),
                "email": email,
                "password_hash": password_hash,
                "name": payload.name.strip(),
                "phone": phone,
            },
        )
        logger.info("Account created user=%s", row["id"])
        return issue_user_token(row["id"]), _format_user(row)

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, UserPublic]:
        if not email or not password:
            raise ValidationError("Email and password are required")
        row = await asyncio.to_thread(self._users.fetch_by_email, email.strip().lower())
        if not row:
            raise Unauthorized("Invalid email or password")
        valid = await asyncio.to_thread(verify_password, password, row.get("password_hash"))
        if not valid:
            raise Unauthorized("Invalid email or password")
        return issue_user_token(row["id"]), _format_user(row)

    async def me(self, identity: Identity) -> UserPublic:
        row = await asyncio.to_thread(self._users.fetch, identity.user_id)
        if not row:
            raise Unauthorized("User not found")
        return _format_user(row)

    async def admin_login(self, password: Optional[str]) -> str:
        if not password:
            raise ValidationError("Password required")
        if not self._admin_password_hash:
            raise Unconfigured("Admin login is not configured. Set ADMIN_PASSWORD_HASH.")
        valid = await asyncio.to_thread(verify_password, password, self._admin_password_hash)
        if not valid:
            raise Unauthorized("Invalid password")
        logger.info("Admin login")
        return issue_admin_token()
