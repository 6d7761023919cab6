"""Access Guard — resolves the request's bearer credential to an owner identity.

Invariants:
    - No Authorization header (or not a Bearer one) → MissingCredentialError (401)
    - Bad signature, expired token or no owner claim → InvalidCredentialError (403)
    - The owner is passed explicitly to every service call; nothing else reads it

Design Decisions:
    - Verification only: tokens are issued by an external identity service
    - Owner read from the `id` claim, falling back to the standard `sub`
    - HTTPBearer(auto_error=False) so the guard, not FastAPI, decides 401 vs 403
"""

import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cardledger.config import Settings, get_settings
from cardledger.core.domain_types import OwnerId
from cardledger.core.errors import InvalidCredentialError, MissingCredentialError

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def resolve_owner(token: str, settings: Settings) -> OwnerId:
    """Verify a bearer token and return the owner it speaks for."""
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise InvalidCredentialError()
    owner = claims.get("id") or claims.get("sub")
    if not isinstance(owner, str) or not owner:
        raise InvalidCredentialError()
    return OwnerId(owner)


async def get_current_owner(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> OwnerId:
    """FastAPI dependency: the authenticated owner of this request."""
    if credentials is None or not credentials.credentials:
        raise MissingCredentialError()
    return resolve_owner(credentials.credentials, settings)
