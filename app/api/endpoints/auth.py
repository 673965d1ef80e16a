from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

import app.schemas.auth as schemas
from app.core.dependencies import get_auth_service, get_current_wallet
from app.core.errors import InvalidAddress, InvalidSignature, StoreUnavailable, WalletNotFound
from app.core.jwt_utils import SessionClaims
from app.services.wallet_auth import WalletAuthService

router = APIRouter()
group_tags: List[str] = ["Auth"]


def _store_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Wallet store unavailable")


@router.post(
    "/wallet",
    tags=group_tags,
    response_model=schemas.WalletResponse,
    status_code=status.HTTP_200_OK,
)
def get_or_create_wallet(
    body: schemas.WalletRequest,
    service: WalletAuthService = Depends(get_auth_service),
) -> schemas.WalletResponse:
    """Fetch or register a wallet and return the challenge it must sign to log in."""
    try:
        wallet = service.get_or_create_wallet(body.address)
    except InvalidAddress:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Address not valid")
    except StoreUnavailable:
        raise _store_unavailable()

    return schemas.WalletResponse.from_record(wallet, message=service.challenge_for(wallet))


@router.post(
    "/login",
    tags=group_tags,
    response_model=schemas.LoginResponse,
)
def login(
    body: schemas.LoginRequest,
    service: WalletAuthService = Depends(get_auth_service),
) -> schemas.LoginResponse:
    """Verify a signed challenge and return a session token."""
    try:
        result = service.login(body.address, body.signature)
    except InvalidAddress:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Address not valid")
    except WalletNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found")
    except InvalidSignature:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    except StoreUnavailable:
        raise _store_unavailable()

    return schemas.LoginResponse(
        access_token=result.token,
        expires_at=result.expires_at,
        wallet=schemas.WalletInfo.from_record(result.wallet),
    )


@router.get(
    "/session",
    tags=group_tags,
    response_model=schemas.SessionResponse,
)
def get_session(session: SessionClaims = Depends(get_current_wallet)) -> schemas.SessionResponse:
    """Return the wallet session attached to the request."""
    return schemas.SessionResponse.from_record(session)
