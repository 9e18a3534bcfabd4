"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Header, HTTPException, status
from typing import Optional
from teamhub.services.auth_service import Principal, get_token_service
from teamhub.services.authorization import Decision
import logging

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(authorization: Optional[str] = Header(None)) -> Principal:
    """
    Dependency to get the authenticated principal from the bearer token.

    The token is verified on its own; the player row is not re-read.

    Raises:
        HTTPException: 401 if the header is missing, malformed or the token is invalid
    """
    if not authorization:
        raise _unauthorized("No token provided.")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise _unauthorized("Malformed token.")

    principal = get_token_service().principal_from_token(parts[1])
    if principal is None:
        raise _unauthorized("Invalid token.")
    return principal


def enforce(decision: Decision, principal: Principal, action: str) -> None:
    """Raise 403 with the decision's reason unless it allows the action."""
    if not decision.allowed:
        logger.info(f"Denied {action} for player {principal.id}: {decision.reason}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)
