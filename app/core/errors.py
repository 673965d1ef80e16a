"""
Authentication error taxonomy.

Every failure the login and session layers can produce is an ``AuthError``
subclass carrying a stable ``code``. The HTTP layer maps codes to status
codes; token failures all collapse to a single "Unauthenticated" response and
the specific kind is only logged.
"""


class AuthError(Exception):
    """Base class for wallet authentication errors."""

    code = "AUTH_ERROR"

    def __init__(self, message: str = "Authentication failed"):
        self.message = message
        super().__init__(message)


class InvalidAddress(AuthError):
    """Raised when a value is not a 20-byte hex wallet address."""

    code = "INVALID_ADDRESS"

    def __init__(self, address: str = ""):
        super().__init__(f"Address not valid: {address!r}")


class WalletNotFound(AuthError):
    code = "WALLET_NOT_FOUND"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Wallet {address} is not registered")


class WalletAlreadyExists(AuthError):
    """Raised by ``create`` when another request registered the address first."""

    code = "WALLET_EXISTS"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Wallet {address} already exists")


class NonceConflict(AuthError):
    """Raised when a compare-and-set rotation lost against a concurrent rotation."""

    code = "NONCE_CONFLICT"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Nonce for {address} was already rotated")


class InvalidSignature(AuthError):
    code = "INVALID_SIGNATURE"

    def __init__(self, reason: str = "Invalid signature"):
        super().__init__(reason)


class StoreUnavailable(AuthError):
    """Raised when the persistence layer fails. Not retried here."""

    code = "STORE_UNAVAILABLE"

    def __init__(self, reason: str = "Wallet store unavailable"):
        super().__init__(reason)


class TokenError(AuthError):
    """Base class for session token failures."""

    code = "TOKEN_ERROR"


class TokenExpired(TokenError):
    code = "TOKEN_EXPIRED"

    def __init__(self):
        super().__init__("Session token has expired")


class TokenMalformed(TokenError):
    code = "TOKEN_MALFORMED"

    def __init__(self, reason: str = "Session token is malformed"):
        super().__init__(reason)


class TokenSignatureInvalid(TokenError):
    code = "TOKEN_SIGNATURE_INVALID"

    def __init__(self):
        super().__init__("Session token signature is invalid")


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""
