"""
Bearer-token authentication.

Credentials are opaque tokens mapped to user ids via AUTH_TOKENS
(``token:userId`` pairs). Token issuance lives elsewhere.
"""

import hmac
import logging
from typing import Optional

from fastapi import Header

from .config import settings
from .errors import AuthError

logger = logging.getLogger("snxai.auth")


def verify(credential: Optional[str]) -> str:
    """
    Resolve a bearer credential to a user id.

    Raises:
        AuthError: if the credential is missing or unknown
    """
    if not credential:
        raise AuthError("Unauthorized")
    for token, user_id in settings.auth_token_map().items():
        if hmac.compare_digest(token.encode("utf-8"), credential.encode("utf-8")):
            return user_id
    logger.info("Rejected unknown bearer credential")
    raise AuthError("Authentication Failed")


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, token = (authorization or "").strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """
    FastAPI dependency returning the caller's user id.

    Raises:
        AuthError: 401 via the app exception handler
    """
    if settings.AUTH_DISABLED:
        return settings.DEV_USER_ID
    return verify(bearer_token(authorization))
