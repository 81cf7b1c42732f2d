"""FastAPI dependencies for actor identity and idempotency keys."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from .config import settings
from .exceptions import AuthenticationError, AuthorizationError, ValidationError


@dataclass(frozen=True)
class Actor:
    """Identity of the caller, as asserted by the account service token."""

    account_id: str
    roles: frozenset = field(default_factory=frozenset)

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return bool(self.roles.intersection(roles))


async def get_current_actor(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Actor:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Actor: Account id and roles from the validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    try:
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=["HS256"]
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}")

    account_id = payload.get("sub")
    if account_id is None:
        raise AuthenticationError(detail="Invalid token payload")

    exp = payload.get("exp")
    if exp and datetime.now(timezone.utc).timestamp() > exp:
        raise AuthenticationError(detail="Token has expired")

    return Actor(account_id=str(account_id), roles=frozenset(payload.get("roles", [])))


def require_party(actor: Actor, *account_ids: str) -> None:
    """Allow the call only for one of the given accounts or an admin."""
    if actor.account_id in account_ids or actor.has_any_role({"admin"}):
        return
    raise AuthorizationError(detail="Only a party to this booking may perform this action")


def require_role(actor: Actor, *roles: str) -> None:
    """Allow the call only for actors holding one of the roles (admin always passes)."""
    if actor.has_any_role(set(roles) | {"admin"}):
        return
    raise AuthorizationError(required_permissions=list(roles))


async def get_idempotency_key(
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key")
) -> Optional[str]:
    """
    Extract and validate the optional idempotency key header.

    Raises:
        ValidationError: If idempotency key format is invalid
    """
    if idempotency_key is None:
        return None

    if not 1 <= len(idempotency_key) <= 255:
        raise ValidationError(
            detail="Idempotency key must be between 1 and 255 characters",
            errors={"Idempotency-Key": "length must be 1..255"}
        )

    return idempotency_key


CurrentActor = Depends(get_current_actor)
IdempotencyKey = Depends(get_idempotency_key)
