import logging
from datetime import datetime, timedelta, timezone

import jwt

from wenjuan.core import config

logger = logging.getLogger(__name__)

TOKEN_CLAIMS = ("id", "username", "role", "name")


def create_access_token(payload: dict, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    claims = {key: payload[key] for key in TOKEN_CLAIMS}
    claims.update({
        "iss": config.JWT_ISSUER,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expire_minutes),
    })
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return the token's user claims, or None when the token is not acceptable.

    Signature mismatch, issuer mismatch, expiry and malformed input all map to
    None so callers never have to catch PyJWT errors.
    """
    try:
        claims = jwt.decode(
            token,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
            issuer=config.JWT_ISSUER,
            options={"require": ["exp", "iss"]},
        )
    except jwt.PyJWTError as exc:
        logger.warning("Rejected access token: %s", exc)
        return None

    if any(claims.get(key) in (None, "") for key in TOKEN_CLAIMS):
        logger.warning("Rejected access token: missing user claims")
        return None
    return {key: claims[key] for key in TOKEN_CLAIMS}
