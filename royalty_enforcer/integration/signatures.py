"""
BLS signatures over operation envelopes.

When signatures are required, an identity is a 48-byte BLS12-381 public key
(hex) and an envelope is accepted only if its `signature` verifies against its
`sender` over:

    sha256(domain_sep("operation_sig:<chain_id>") || canonical_json(envelope - signature))

The envelope's `nonce` is part of the signed bytes, so a captured envelope
cannot be accepted twice (see core/replay.py). Hex pubkeys are compared in
their lowercase 0x-prefixed form.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, Mapping

from py_ecc.bls import G2Basic

from ..core.errors import InvalidSignatureError
from ..state.canonical import (
    canonical_hex_fixed_allow_0x,
    canonical_json_bytes,
    domain_sep_bytes,
    hex_to_bytes_fixed,
)

PUBKEY_BYTES = 48
SIGNATURE_BYTES = 96

_PUBKEY_HEX_RE = re.compile(r"^(0[xX])?[0-9a-fA-F]{96}$")


def canonical_identity(identity: str) -> str:
    """Lowercase 0x-prefixed form of a hex pubkey identity; other identities unchanged."""
    if _PUBKEY_HEX_RE.fullmatch(identity.strip()):
        return canonical_hex_fixed_allow_0x(identity, nbytes=PUBKEY_BYTES, name="identity")
    return identity


def signing_message(envelope: Mapping[str, Any], *, chain_id: str) -> bytes:
    unsigned: Dict[str, Any] = {k: v for k, v in envelope.items() if k != "signature"}
    msg = domain_sep_bytes(f"operation_sig:{chain_id}", version=1) + canonical_json_bytes(unsigned)
    return hashlib.sha256(msg).digest()


def pubkey_hex(secret_key: int) -> str:
    return "0x" + bytes(G2Basic.SkToPk(secret_key)).hex()


def sign_envelope(secret_key: int, envelope: Mapping[str, Any], *, chain_id: str) -> Dict[str, Any]:
    """Return a copy of `envelope` with a `signature` field added."""
    sig = G2Basic.Sign(secret_key, signing_message(envelope, chain_id=chain_id))
    signed = dict(envelope)
    signed["signature"] = "0x" + bytes(sig).hex()
    return signed


def verify_envelope(envelope: Mapping[str, Any], *, chain_id: str) -> None:
    """
    Raises:
        InvalidSignatureError: If the signature is missing, malformed, or does not verify
    """
    sender = envelope.get("sender")
    signature = envelope.get("signature")
    if not isinstance(signature, str):
        raise InvalidSignatureError("operation signature missing")
    try:
        pk = hex_to_bytes_fixed(sender, nbytes=PUBKEY_BYTES, name="sender")
        sig = hex_to_bytes_fixed(signature, nbytes=SIGNATURE_BYTES, name="signature")
    except (TypeError, ValueError) as exc:
        raise InvalidSignatureError(str(exc)) from exc

    try:
        ok = bool(G2Basic.Verify(pk, signing_message(envelope, chain_id=chain_id), sig))
    except Exception as exc:  # py_ecc raises assorted errors on invalid points
        raise InvalidSignatureError(f"signature verification error: {exc}") from exc
    if not ok:
        raise InvalidSignatureError("operation signature does not verify")
