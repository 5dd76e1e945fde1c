"""Operator token verification.

Tokens are issued by the identity provider (Keycloak-style claims). This
module only verifies signatures and reads claims; it never stores credentials.
`create_access_token` exists for local development and tests.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Iterable, Optional

import jwt

from app.core.config import settings


@dataclass(frozen=True)
class OperatorIdentity:
    """The authenticated operator performing an action. Read-only input to the core."""
    id: str
    username: str
    roles: FrozenSet[str] = field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        return role in self.roles


def create_access_token(
    subject: str,
    username: str,
    roles: Iterable[str] = (),
    expires_minutes: int = 15,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "preferred_username": username,
        "realm_access": {"roles": sorted(roles)},
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if settings.AUTH_AUDIENCE:
        payload["aud"] = settings.AUTH_AUDIENCE
    return jwt.encode(payload, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)


def decode_access_token(token: str) -> Optional[OperatorIdentity]:
    """Return the operator for a valid token, None for anything invalid or expired."""
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_SECRET_KEY,
            algorithms=[settings.AUTH_ALGORITHM],
            audience=settings.AUTH_AUDIENCE,
            options={"require": ["sub", "exp"], "verify_aud": bool(settings.AUTH_AUDIENCE)},
        )
    except jwt.PyJWTError:
        return None

    roles = (claims.get("realm_access") or {}).get("roles") or []
    return OperatorIdentity(
        id=str(claims["sub"]),
        username=claims.get("preferred_username") or str(claims["sub"]),
        roles=frozenset(roles),
    )
