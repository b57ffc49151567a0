import json
from typing import Any, Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from cryptography.fernet import Fernet, InvalidToken

from config import settings


_fernet = Fernet(settings.encryption_key)
_hasher = PasswordHasher()


def issue_token(claims: Dict[str, Any]) -> str:
    return _fernet.encrypt(json.dumps(claims).encode("utf-8")).decode("utf-8")


def read_token(token: str, ttl_seconds: int) -> Optional[Dict[str, Any]]:
    """Return the token's claims, or None when it is forged, malformed or expired."""
    try:
        raw = _fernet.decrypt(token.encode("utf-8"), ttl=ttl_seconds)
        claims = json.loads(raw.decode("utf-8"))
    except (InvalidToken, ValueError):
        return None
    return claims if isinstance(claims, dict) else None


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False
