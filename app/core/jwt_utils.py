"""
Session Token Utilities

This module handles JSON Web Token (JWT) issuing and validation for wallet sessions.
After a wallet passes the challenge/response login, a SessionCodec mints a signed token
that the client attaches to subsequent requests.

Flow:
1. Login verifies the wallet signature -> SessionCodec.issue() mints a JWT
2. Client sends Authorization: Bearer <token> -> SessionCodec.validate() checks it
3. Protected endpoints use get_current_wallet() from dependencies.py to get the claims

The JWT carries a fixed, versioned set of claims and nothing else:
- sub: wallet identity id
- address: checksummed wallet address
- iat: issued at timestamp
- exp: expiration timestamp (SESSION_TTL_SECONDS after iat)
- ver: claims layout version

Signature and expiry are always verified. There is no option to skip the expiry check.
"""

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from app.core.errors import (
    ConfigurationError,
    InvalidAddress,
    TokenExpired,
    TokenMalformed,
    TokenSignatureInvalid,
)
from app.core.eth_auth import normalize_address
from app.models.wallet import WalletIdentity

CLAIMS_VERSION = 1
REQUIRED_CLAIMS = ["sub", "address", "iat", "exp", "ver"]


@dataclass(frozen=True)
class SessionClaims:
    wallet_id: UUID
    address: str
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sub": str(self.wallet_id),
            "address": self.address,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
            "ver": CLAIMS_VERSION,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SessionClaims":
        if payload.get("ver") != CLAIMS_VERSION:
            raise TokenMalformed(f"Unsupported claims version: {payload.get('ver')!r}")
        try:
            wallet_id = UUID(str(payload["sub"]))
            address = normalize_address(payload["address"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError, InvalidAddress) as exc:
            raise TokenMalformed("Session token claims are invalid") from exc
        return cls(
            wallet_id=wallet_id,
            address=address,
            issued_at=issued_at,
            expires_at=expires_at,
        )


class SessionCodec:
    """
    Issues and validates session tokens with a process-wide shared secret.

    Built once at startup by build_session_codec() and passed to whoever needs it;
    it holds no mutable state, so one instance serves all requests.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
    ):
        if not secret:
            raise ConfigurationError("session signing secret is empty")
        if ttl <= timedelta(0):
            raise ConfigurationError("session ttl must be positive")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def claims_for(self, identity: WalletIdentity, now: Optional[datetime] = None) -> SessionClaims:
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        return SessionClaims(
            wallet_id=identity.id,
            address=identity.address,
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )

    def encode(self, claims: SessionClaims) -> str:
        return jwt.encode(claims.to_payload(), self._secret, algorithm=self.algorithm)

    def issue(self, identity: WalletIdentity, now: Optional[datetime] = None) -> str:
        """
        Create a session token for an authenticated wallet.

        Args:
            identity: The wallet that just passed login
            now: Issue time, defaults to the current UTC time

        Returns:
            A JWT string for the Authorization: Bearer <token> header
        """
        return self.encode(self.claims_for(identity, now))

    def validate(self, token: str, now: Optional[datetime] = None) -> SessionClaims:
        """
        Decode a presented token and return its claims.

        Args:
            token: The raw JWT, without the Bearer prefix
            now: Time the expiry is checked against, defaults to the current UTC time

        Raises:
            TokenExpired: If the exp claim has passed
            TokenSignatureInvalid: If the signature does not verify or the token is unsigned
            TokenMalformed: If the token or its claims cannot be parsed
        """
        if not token or not isinstance(token, str):
            raise TokenMalformed("Missing token")
        _check_segments(token)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                # with an explicit clock, expiry is checked below only
                options={"require": REQUIRED_CLAIMS, "verify_exp": now is None},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        # InvalidSignatureError subclasses DecodeError, so it is matched first
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
            raise TokenSignatureInvalid()
        except jwt.InvalidTokenError as exc:
            raise TokenMalformed(str(exc)) from exc

        claims = SessionClaims.from_payload(payload)
        if claims.expires_at <= (now or datetime.now(timezone.utc)):
            raise TokenExpired()
        return claims


def _b64url_decode(segment: str) -> Optional[bytes]:
    """Strict base64url decode; None unless ``segment`` is the canonical unpadded encoding."""
    try:
        raw = base64.b64decode(segment + "=" * (-len(segment) % 4), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return None
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != segment:
        return None
    return raw


def _check_segments(token: str) -> None:
    """
    Classify damage to the token text before PyJWT sees it.

    A broken header or payload makes the token malformed. Anything wrong with the
    signature segment, including stray characters, is a bad signature.
    """
    parts = token.split(".", 2)
    if len(parts) != 3:
        raise TokenMalformed("Not enough segments")
    header, payload, signature = parts
    if _b64url_decode(header) is None or _b64url_decode(payload) is None:
        raise TokenMalformed("Invalid header or payload encoding")
    # an empty signature is an unsigned token, rejected by the algorithm check
    if signature and _b64url_decode(signature) is None:
        raise TokenSignatureInvalid()


def build_session_codec(settings) -> SessionCodec:
    """
    Build the process-wide codec from settings.

    Called once at startup; a missing secret stops the service before it serves requests.
    """
    if not settings.JWT_SECRET:
        raise ConfigurationError("JWT_SECRET is not configured")
    return SessionCodec(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        ttl=timedelta(seconds=settings.SESSION_TTL_SECONDS),
    )
