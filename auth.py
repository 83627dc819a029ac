"""
Bearer tokens and the access guard.

Tokens are HS256 JWTs carrying the account's name, email and role and expire
after `Settings.token_expire_minutes`. The guard is a set of FastAPI
dependencies: `require_auth` for any signed-in caller and `require_admin` for
the admin routes. Ownership checks take the resource owner and run inside the
handler.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from config import Settings
from errors import AuthError
from schemas import Claims

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class InvalidToken(Exception):
    """Signature, expiry or payload check failed."""


def issue_token(claims: Claims, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.model_dump()
    to_encode.update({
        "iat": now,
        "exp": now + timedelta(minutes=settings.token_expire_minutes),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, settings: Settings) -> Claims:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return Claims(
            name=payload["name"],
            email=payload["email"],
            role=payload["role"],
        )
    except (JWTError, KeyError, PydanticValidationError) as exc:
        raise InvalidToken(str(exc)) from exc


def request_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_auth(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(request_settings),
) -> Claims:
    if not authorization:
        raise AuthError("Missing token", status_code=401)
    parts = authorization.split()
    token = parts[1] if len(parts) > 1 else ""
    try:
        claims = verify_token(token, settings)
    except InvalidToken as exc:
        logger.info("Rejected token for %s %s: %s", request.method, request.url.path, exc)
        raise AuthError("Invalid token")
    request.state.user = claims
    return claims


def require_admin(claims: Claims = Depends(require_auth)) -> Claims:
    if claims.role != ADMIN_ROLE:
        raise AuthError("Access denied")
    return claims


def require_owner_or_admin(
    claims: Claims,
    owner_email: Optional[str],
    message: str = "Access denied",
) -> None:
    if claims.email != owner_email and claims.role != ADMIN_ROLE:
        raise AuthError(message)
