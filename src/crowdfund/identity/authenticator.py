"""Caller authentication — does the caller control the identity it claims?

The engine asks one question, ``authenticate(identity) -> bool``, and
trusts the answer. How the proof is carried is up to the host:

- TrustedCallerAuthenticator: the host already knows who is calling
  (local CLI operator, an upstream gateway).
- SignatureAuthenticator: the caller signs a message describing the call
  with an Ethereum key; the identity is the signing address.
- AllowAllAuthenticator / DenyAllAuthenticator: test doubles.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Protocol, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError
from web3 import Web3


class Authenticator(Protocol):
    def authenticate(self, identity: str) -> bool:
        ...


class AllowAllAuthenticator:
    """Accepts every identity."""

    def authenticate(self, identity: str) -> bool:
        return True


class DenyAllAuthenticator:
    """Rejects every identity."""

    def authenticate(self, identity: str) -> bool:
        return False


class TrustedCallerAuthenticator:
    """Authenticates a fixed set of identities vouched for by the host."""

    def __init__(self, identities: Iterable[str]) -> None:
        # Identities compare exactly; " alice" and "alice" are different callers.
        self._identities = frozenset(i for i in identities if i)

    def authenticate(self, identity: str) -> bool:
        return identity in self._identities


def call_message(operation: str, **fields: Any) -> str:
    """Canonical text a caller signs to authorize one operation.

    Binding the operation and its arguments into the message stops a
    signature for one call being replayed against another.
    """
    return json.dumps(
        {"operation": operation, **fields},
        sort_keys=True,
        ensure_ascii=False,
        default=str,
    )


def sign_call(message: str, private_key: Union[str, bytes]) -> str:
    """Sign a call message (EIP-191 personal message). Returns hex signature."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return "0x" + bytes(signed.signature).hex()


class SignatureAuthenticator:
    """Authenticates Ethereum addresses that signed the call message.

    Usage:
        message = call_message("donate", campaign_id=0, amount=100)
        auth = SignatureAuthenticator(message, [sign_call(message, key)])
        auth.authenticate(address)  # True for the signing address
    """

    def __init__(self, message: str, signatures: Iterable[Union[str, bytes]]) -> None:
        self._message = message
        signable = encode_defunct(text=message)
        recovered: set[str] = set()
        for signature in signatures:
            try:
                recovered.add(Account.recover_message(signable, signature=signature))
            except (ValueError, TypeError, IndexError, BadSignature, ValidationError):
                # Malformed or unrecoverable signature proves nothing.
                continue
        self._signers = frozenset(recovered)

    @property
    def signers(self) -> frozenset[str]:
        return self._signers

    def authenticate(self, identity: str) -> bool:
        if not Web3.is_address(identity):
            return False
        return Web3.to_checksum_address(identity) in self._signers
