"""
Caller identity tokens.

Clients send `Authorization: Bearer <jwt>`. The token payload is the caller
identity itself: `{"userid": ..., "permissions": [...]}`.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError

from booking_api.core.config import Settings, get_settings
from booking_api.core.logging import get_logger
from booking_api.schemas.caller import CallerIdentity

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_caller(token: str, settings: Optional[Settings] = None) -> Optional[CallerIdentity]:
    """
    Decode a bearer token into a caller identity.
    Returns None for tokens that are expired, badly signed or lack a userid.
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except InvalidTokenError as e:
        logger.warning("caller_token_rejected", reason=str(e))
        return None

    try:
        return CallerIdentity.model_validate(payload)
    except ValidationError as e:
        logger.warning("caller_payload_invalid", errors=e.error_count())
        return None


def caller_from_authorization(
    header: Optional[str], settings: Optional[Settings] = None
) -> Optional[CallerIdentity]:
    """Extract the caller from an Authorization header value, if any."""
    if not header:
        return None
    if not header.lower().startswith(BEARER_PREFIX):
        logger.warning("caller_scheme_unsupported")
        return None
    return decode_caller(header[len(BEARER_PREFIX):].strip(), settings)
