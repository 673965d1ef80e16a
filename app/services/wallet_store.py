"""
Wallet identity store.

One record per checksummed address, each with a single-use nonce. The store
is the only place nonces change, and ``rotate_nonce`` is a compare-and-set so
that two logins racing on the same nonce cannot both win, even across
service instances.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Dict, Optional
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NonceConflict, StoreUnavailable, WalletAlreadyExists, WalletNotFound
from app.core.eth_auth import generate_nonce, normalize_address
from app.models.wallet import Wallet, WalletIdentity, utc_now

logger = logging.getLogger(__name__)


class WalletStore(ABC):
    """Persistence contract consumed by the login protocol."""

    @abstractmethod
    def find_by_address(self, address: str) -> Optional[WalletIdentity]:
        """
        Get a wallet by address.

        Returns:
            WalletIdentity if found, None otherwise

        Raises:
            StoreUnavailable: If the backend cannot be reached
        """

    @abstractmethod
    def create(self, address: str) -> WalletIdentity:
        """
        Register a wallet with a fresh random nonce.

        Raises:
            WalletAlreadyExists: If the address is already registered
            StoreUnavailable: If the backend cannot be reached
        """

    @abstractmethod
    def rotate_nonce(self, address: str, expected_nonce: Optional[str] = None) -> WalletIdentity:
        """
        Atomically replace the nonce and return the updated record.

        With ``expected_nonce`` the replacement only happens while the stored
        nonce still equals it; exactly one of several racing callers wins.

        Raises:
            WalletNotFound: If the address is not registered
            NonceConflict: If the stored nonce no longer equals ``expected_nonce``
            StoreUnavailable: If the backend cannot be reached
        """

    def get_or_create(self, address: str) -> WalletIdentity:
        """Fetch the wallet, registering it on first contact."""
        address = normalize_address(address)
        identity = self.find_by_address(address)
        if identity is not None:
            return identity
        try:
            return self.create(address)
        except WalletAlreadyExists:
            # another request registered it between our read and insert
            identity = self.find_by_address(address)
            if identity is None:
                raise StoreUnavailable(f"Wallet {address} vanished after a duplicate insert")
            return identity


class SqlWalletStore(WalletStore):
    """
    SQLAlchemy implementation.

    Each operation runs in its own short transaction from ``session_factory``.
    Rotation is a single conditional UPDATE, so the database serializes racing
    rotations on the row and the rowcount tells the caller whether it won.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def find_by_address(self, address: str) -> Optional[WalletIdentity]:
        address = normalize_address(address)
        try:
            with self.session_factory() as db:
                model = db.execute(
                    select(Wallet).where(Wallet.address == address)
                ).scalar_one_or_none()
                return WalletIdentity.from_model(model) if model else None
        except SQLAlchemyError as exc:
            logger.error("wallet lookup failed for %s: %s", address, exc)
            raise StoreUnavailable() from exc

    def create(self, address: str) -> WalletIdentity:
        address = normalize_address(address)
        now = utc_now()
        model = Wallet(
            id=uuid4(),
            address=address,
            nonce=generate_nonce(),
            created_at=now,
            updated_at=now,
        )
        try:
            with self.session_factory() as db:
                db.add(model)
                db.commit()
                db.refresh(model)
                identity = WalletIdentity.from_model(model)
        except IntegrityError as exc:
            raise WalletAlreadyExists(address) from exc
        except SQLAlchemyError as exc:
            logger.error("wallet create failed for %s: %s", address, exc)
            raise StoreUnavailable() from exc

        logger.info("registered wallet %s", address)
        return identity

    def rotate_nonce(self, address: str, expected_nonce: Optional[str] = None) -> WalletIdentity:
        address = normalize_address(address)
        stmt = (
            update(Wallet)
            .where(Wallet.address == address)
            .values(nonce=generate_nonce(), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if expected_nonce is not None:
            stmt = stmt.where(Wallet.nonce == expected_nonce)

        try:
            with self.session_factory() as db:
                result = db.execute(stmt)
                if result.rowcount != 1:
                    db.rollback()
                    exists = db.execute(
                        select(Wallet.id).where(Wallet.address == address)
                    ).first()
                    if exists is None:
                        raise WalletNotFound(address)
                    raise NonceConflict(address)
                db.commit()
                model = db.execute(
                    select(Wallet).where(Wallet.address == address)
                ).scalar_one()
                return WalletIdentity.from_model(model)
        except SQLAlchemyError as exc:
            logger.error("nonce rotation failed for %s: %s", address, exc)
            raise StoreUnavailable() from exc


class InMemoryWalletStore(WalletStore):
    """Process-local store; one lock serializes every mutation."""

    def __init__(self):
        self._wallets: Dict[str, WalletIdentity] = {}
        self._lock = threading.Lock()

    def find_by_address(self, address: str) -> Optional[WalletIdentity]:
        return self._wallets.get(normalize_address(address))

    def create(self, address: str) -> WalletIdentity:
        address = normalize_address(address)
        with self._lock:
            if address in self._wallets:
                raise WalletAlreadyExists(address)
            now = utc_now()
            identity = WalletIdentity(
                id=uuid4(),
                address=address,
                nonce=generate_nonce(),
                created_at=now,
                updated_at=now,
            )
            self._wallets[address] = identity
        return identity

    def rotate_nonce(self, address: str, expected_nonce: Optional[str] = None) -> WalletIdentity:
        address = normalize_address(address)
        with self._lock:
            current = self._wallets.get(address)
            if current is None:
                raise WalletNotFound(address)
            if expected_nonce is not None and current.nonce != expected_nonce:
                raise NonceConflict(address)
            rotated = replace(current, nonce=generate_nonce(), updated_at=utc_now())
            self._wallets[address] = rotated
        return rotated
