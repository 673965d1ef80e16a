"""
Canonical challenge message.

The rendered text is what wallets sign. Clients may pre-render it, so a
template must never change once published: add a new version instead.
"""

from typing import Dict

from app.core.eth_auth import normalize_address

CURRENT_MESSAGE_VERSION = 1

MESSAGE_TEMPLATES: Dict[int, str] = {
    1: (
        "Welcome\n"
        "\n"
        "Click to sign in and accept the Terms of Service\n"
        "This request will not trigger a blockchain transaction or cost any gas fees.\n"
        "Your authentication status will reset after 24 hours.\n"
        "\n"
        "Wallet address:\n"
        "{address}\n"
        "\n"
        "Nonce:\n"
        "{nonce}"
    ),
}


def build_message(address: str, nonce: str, version: int = CURRENT_MESSAGE_VERSION) -> str:
    """Render the challenge for ``(address, nonce)``; the address is checksummed first."""
    template = MESSAGE_TEMPLATES.get(version)
    if template is None:
        raise ValueError(f"unknown challenge message version: {version}")
    return template.format(address=normalize_address(address), nonce=nonce)
