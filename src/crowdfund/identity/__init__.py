"""Identity — caller authentication capabilities."""

from crowdfund.identity.authenticator import (
    AllowAllAuthenticator,
    Authenticator,
    DenyAllAuthenticator,
    SignatureAuthenticator,
    TrustedCallerAuthenticator,
    call_message,
    sign_call,
)

__all__ = [
    "AllowAllAuthenticator",
    "Authenticator",
    "DenyAllAuthenticator",
    "SignatureAuthenticator",
    "TrustedCallerAuthenticator",
    "call_message",
    "sign_call",
]
