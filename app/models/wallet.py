from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.base import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands DateTime(timezone=True) columns back without tzinfo
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class Wallet(Base):
    """Model for wallets table, one row per checksummed address
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "address": "0xAb5801a7D398351b8bE11C439e05C5B3259aeC9B",
        "nonce": "0b3a1f4e-6a55-4a40-9b7c-3f1f2c0f9d11",
        "created_at": "2024-01-01T12:00:00+00:00",
        "updated_at": "2024-01-01T12:00:00+00:00"
    }
    """

    __tablename__ = "wallets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    address = Column(String(42), nullable=False, unique=True, index=True)
    nonce = Column(String(36), nullable=False)  # rotated after every successful login
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)


@dataclass(frozen=True)
class WalletIdentity:
    """Detached, read-only view of a wallet row handed to the auth layer."""

    id: UUID
    address: str
    nonce: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, model: Wallet) -> "WalletIdentity":
        return cls(
            id=model.id,
            address=model.address,
            nonce=model.nonce,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
