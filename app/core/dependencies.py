"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to reach the wallet auth service and to require a valid session token.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(session: SessionClaims = Depends(get_current_wallet)):
        # session is the validated claims of the bearer token
        return {"address": session.address}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_wallet() dependency
3. _extract_token() extracts token from header
4. WalletAuthService.validate() checks signature and expiry (jwt_utils.py)
5. Returns the session claims to the route handler
Every token failure answers the same 401 so callers learn nothing about why a token failed.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.core.errors import TokenError
from app.core.jwt_utils import SessionClaims
from app.services.wallet_auth import WalletAuthService

UNAUTHENTICATED = "Unauthenticated"


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHENTICATED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_auth_service(request: Request) -> WalletAuthService:
    """The service built at startup in main.lifespan."""
    return request.app.state.auth_service


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract the token from the Authorization header.
    Supports both "Bearer <token>" and plain token formats.
    Raises:
        HTTPException 401: If Authorization header is missing or empty
    """
    if not authorization:
        raise _unauthenticated()

    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    else:
        token = authorization
    if not token:
        raise _unauthenticated()
    return token


def get_current_wallet(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    service: WalletAuthService = Depends(get_auth_service),
) -> SessionClaims:
    """
    Require an authenticated wallet session, returning its claims.
    """
    token = _extract_token(authorization)
    try:
        return service.validate(token)
    except TokenError:
        raise _unauthenticated()
