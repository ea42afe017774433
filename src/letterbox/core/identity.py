"""Author identities built on Ed25519 primitives."""
from __future__ import annotations

import base64
import binascii
import re

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey
from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "AuthorKeypair",
    "generate_author_keypair",
    "is_valid_address",
    "keypair_is_consistent",
    "sign",
    "verify",
]

PUBKEY_LENGTH_BYTES = 32
_SHORTNAME_RE = re.compile(r"^[a-z][a-z0-9]{3}$")
_ADDRESS_RE = re.compile(r"^@(?P<shortname>[a-z][a-z0-9]{3})\.b(?P<pubkey>[a-z2-7]+)$")


class AuthorKeypair(BaseModel):
    """A forum participant's signing identity.

    ``address`` is the public identifier embedded in document paths; ``secret``
    is the base32-encoded Ed25519 seed and never leaves the local process.
    """

    address: str = Field(..., description="Public author address, e.g. @suzy.b...")
    secret: str = Field(..., description="Base32-encoded Ed25519 seed")

    model_config = ConfigDict(frozen=True)


def _encode_b32(data: bytes) -> str:
    return base64.b32encode(data).decode().rstrip("=").lower()


def _decode_b32(data: str) -> bytes:
    padding = "=" * (-len(data) % 8)
    try:
        return base64.b32decode(data.upper() + padding)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid base32 encoding: {err}") from err


def _address_for(shortname: str, verify_key: VerifyKey) -> str:
    return f"@{shortname}.b{_encode_b32(verify_key.encode())}"


def generate_author_keypair(shortname: str) -> AuthorKeypair:
    """Generate a fresh author keypair.

    Args:
        shortname: Four characters, lowercase letters and digits, starting with a letter.

    Returns:
        A new keypair whose address is safe to embed in letterbox paths.

    Raises:
        ValueError: If the shortname is malformed.
    """
    if not _SHORTNAME_RE.match(shortname):
        raise ValueError(f"Invalid shortname {shortname!r}: expected 4 chars [a-z][a-z0-9]{{3}}")

    signing_key = SigningKey.generate()
    return AuthorKeypair(
        address=_address_for(shortname, signing_key.verify_key),
        secret=_encode_b32(signing_key.encode()),
    )


def is_valid_address(address: str) -> bool:
    """Return True if ``address`` parses and carries a 32-byte public key."""
    try:
        _verify_key_for(address)
    except ValueError:
        return False
    return True


def _verify_key_for(address: str) -> VerifyKey:
    match = _ADDRESS_RE.match(address)
    if match is None:
        raise ValueError(f"Invalid author address: {address!r}")
    pubkey = _decode_b32(match.group("pubkey"))
    if len(pubkey) != PUBKEY_LENGTH_BYTES:
        raise ValueError("Ed25519 public keys must be 32 bytes")
    return VerifyKey(pubkey)


def keypair_is_consistent(keypair: AuthorKeypair) -> bool:
    """Return True if the keypair's secret derives the public key in its address."""
    try:
        signing_key = SigningKey(_decode_b32(keypair.secret))
        return signing_key.verify_key.encode() == _verify_key_for(keypair.address).encode()
    except ValueError:
        return False


def sign(keypair: AuthorKeypair, message: bytes) -> str:
    """Sign ``message`` and return the base32-encoded detached signature.

    Raises:
        ValueError: If the keypair secret is malformed.
    """
    try:
        signing_key = SigningKey(_decode_b32(keypair.secret))
    except ValueError as err:
        raise ValueError(f"Invalid keypair secret: {err}") from err
    return "b" + _encode_b32(signing_key.sign(message).signature)


def verify(address: str, message: bytes, signature: str) -> bool:
    """Verify a detached signature produced by :func:`sign`.

    Returns:
        True if the signature is valid for ``message`` under ``address``; False otherwise.
    """
    if not signature.startswith("b"):
        return False
    try:
        verify_key = _verify_key_for(address)
        verify_key.verify(message, _decode_b32(signature[1:]))
        return True
    except (BadSignatureError, ValueError):
        return False
