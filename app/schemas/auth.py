from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.my_base_model import CustomBaseModel


class WalletRequest(BaseModel):
    """Request model for fetching or registering a wallet - input validation"""

    address: str = Field(..., description="Wallet address, any casing")


class WalletResponse(CustomBaseModel):
    """Wallet with the nonce and challenge to sign for the next login - output"""

    id: UUID
    address: str
    nonce: str
    message: str


class LoginRequest(BaseModel):
    """Request model for wallet login - input validation"""

    address: str = Field(..., description="Wallet address")
    signature: str = Field(..., description="personal_sign signature of the challenge message")


class WalletInfo(CustomBaseModel):
    """Public wallet fields; the nonce is never returned after login"""

    id: UUID
    address: str
    created_at: datetime
    updated_at: datetime


class LoginResponse(CustomBaseModel):
    """Response model for authentication - output"""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    wallet: WalletInfo


class SessionResponse(CustomBaseModel):
    """Claims of the session attached to the request"""

    wallet_id: UUID
    address: str
    issued_at: datetime
    expires_at: datetime
