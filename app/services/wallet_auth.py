"""
Wallet challenge/response login.

Flow:
1. Client calls get_or_create_wallet(address) and learns the current nonce
2. Client signs build_message(address, nonce) with its wallet
3. Client calls login(address, signature)
   - the signature is checked against the nonce stored right now
   - on success the nonce is rotated with a compare-and-set keyed on that nonce
   - a session token is issued for the rotated identity
4. Client sends the token on later requests -> validate(token)

A failed verification changes nothing, so the owner can retry with the same
nonce. A successful one consumes the nonce: replaying the same signature, or
racing a second login with it, fails with InvalidSignature.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.auth_message import build_message
from app.core.errors import InvalidSignature, NonceConflict, TokenError, WalletNotFound
from app.core.eth_auth import normalize_address, verify_signature
from app.core.jwt_utils import SessionClaims, SessionCodec
from app.models.wallet import WalletIdentity
from app.services.wallet_store import WalletStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    """Result of a successful login."""

    token: str
    wallet: WalletIdentity
    expires_at: datetime


class WalletAuthService:
    """
    Login protocol over a wallet store and a session codec.

    Holds no state of its own; safe to share between concurrent requests.
    """

    def __init__(self, store: WalletStore, codec: SessionCodec):
        """
        Args:
            store: Identity store, the single source of truth for nonces
            codec: Session token issuer/validator
        """
        self.store = store
        self.codec = codec

    def get_or_create_wallet(self, address: str) -> WalletIdentity:
        """
        Return the wallet for ``address`` with its current nonce, registering it if new.

        Raises:
            InvalidAddress: If ``address`` is not a wallet address
            StoreUnavailable: If the store fails
        """
        return self.store.get_or_create(normalize_address(address))

    @staticmethod
    def challenge_for(identity: WalletIdentity) -> str:
        """The exact text the wallet owner must sign for the next login."""
        return build_message(identity.address, identity.nonce)

    def login(self, address: str, signature: str, now: Optional[datetime] = None) -> LoginResult:
        """
        Verify a signed challenge and issue a session.

        Args:
            address: Address the caller claims to control, any casing
            signature: personal_sign signature over the current challenge

        Returns:
            LoginResult with the token and the identity after rotation

        Raises:
            InvalidAddress: If ``address`` is not a wallet address
            WalletNotFound: If the wallet was never registered
            InvalidSignature: If the signature does not match the current nonce
            StoreUnavailable: If the store fails
        """
        address = normalize_address(address)

        identity = self.store.find_by_address(address)
        if identity is None:
            logger.warning("login rejected for %s: wallet not registered", address)
            raise WalletNotFound(address)

        observed_nonce = identity.nonce
        message = build_message(address, observed_nonce)
        try:
            verify_signature(message, signature, address)
        except InvalidSignature as exc:
            logger.warning("login rejected for %s: %s", address, exc.message)
            raise

        try:
            rotated = self.store.rotate_nonce(address, expected_nonce=observed_nonce)
        except NonceConflict:
            # a concurrent login consumed this nonce first
            logger.warning("login rejected for %s: nonce already consumed", address)
            raise InvalidSignature("Nonce already used")

        claims = self.codec.claims_for(rotated, now)
        token = self.codec.encode(claims)
        logger.info("wallet %s logged in", address)
        return LoginResult(token=token, wallet=rotated, expires_at=claims.expires_at)

    def validate(self, token: str, now: Optional[datetime] = None) -> SessionClaims:
        """
        Check a presented session token.

        Raises:
            TokenError: TokenExpired, TokenMalformed or TokenSignatureInvalid
        """
        try:
            return self.codec.validate(token, now)
        except TokenError as exc:
            logger.info("session token rejected: %s", exc.code)
            raise
