import time
from typing import Optional

import bcrypt
from itsdangerous import BadSignature, URLSafeSerializer

from config import get_settings

SECONDS_PER_DAY = 24 * 3600


class AuthError(Exception):
    """Base class for bearer token failures."""


class InvalidTokenError(AuthError):
    pass


class ExpiredTokenError(AuthError):
    pass


def _serializer() -> URLSafeSerializer:
    settings = get_settings()
    return URLSafeSerializer(settings.token_secret, salt="auth-token")


def issue_token(
    user_id: int, *, now: Optional[float] = None, ttl_days: Optional[int] = None
) -> str:
    issued_at = int(time.time() if now is None else now)
    if ttl_days is None:
        ttl_days = get_settings().token_ttl_days
    expiry = issued_at + ttl_days * SECONDS_PER_DAY

    token_data = {"sub": user_id, "iat": issued_at, "exp": expiry}

    return _serializer().dumps(token_data)


def verify_token(token: str, *, now: Optional[float] = None) -> int:
    """Return the subject id carried by ``token``.

    Raises ``InvalidTokenError`` for tampered or malformed tokens and
    ``ExpiredTokenError`` once the embedded expiry has passed.
    """
    try:
        data = _serializer().loads(token)
    except BadSignature as exc:
        raise InvalidTokenError("Invalid token") from exc

    if not isinstance(data, dict):
        raise InvalidTokenError("Malformed token")
    subject = data.get("sub")
    expiry = data.get("exp")
    if not isinstance(subject, int) or not isinstance(expiry, int):
        raise InvalidTokenError("Malformed token")

    current_time = time.time() if now is None else now
    if current_time > expiry:
        raise ExpiredTokenError("Token expired")

    return subject


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
