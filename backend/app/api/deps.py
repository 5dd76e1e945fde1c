"""FastAPI dependencies: DB session and the operator from the bearer token.

SECURITY: The token is issued by the identity provider. Roles in the token are
the only permission flags the core reads.
"""
from typing import Callable, Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import BusinessError
from app.core.security import OperatorIdentity, decode_access_token
from app.db.session import SessionLocal

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_operator(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> OperatorIdentity:
    if not credentials:
        raise BusinessError.unauthorized("missing bearer token")

    operator = decode_access_token(credentials.credentials)
    if not operator:
        raise BusinessError.unauthorized("invalid or expired token")
    return operator


def require_role(role: str) -> Callable[..., OperatorIdentity]:
    """Dependency factory: the operator must carry `role`."""

    def _check(
        request: Request,
        operator: OperatorIdentity = Depends(get_current_operator),
    ) -> OperatorIdentity:
        if not operator.has_role(role):
            AuditLog.log_access_denied(request.url.path, operator.id, role)
            raise BusinessError.forbidden(f"{operator.username} lacks {role}")
        return operator

    return _check
