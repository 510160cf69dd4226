"""PKCE (Proof Key for Code Exchange) and state-nonce generation.

RFC 7636: https://www.rfc-editor.org/rfc/rfc7636

Every login attempt draws a fresh :class:`PkcePair` and a fresh state nonce.
Neither is persisted or reused: a retried login regenerates both.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass

__all__ = [
    "PkcePair",
    "build_pkce_pair",
    "compute_code_challenge",
    "new_state",
    "random_urlsafe",
]

VERIFIER_BYTES = 64
"""64 random bytes encode to 86 base64url characters, inside RFC 7636's 43..128."""

STATE_BYTES = 18

CHALLENGE_METHOD = "S256"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def random_urlsafe(n_bytes: int) -> str:
    """Return *n_bytes* from the OS CSPRNG, base64url-encoded without padding.

    The output alphabet is ``[A-Za-z0-9_-]``.
    """
    return _b64url(secrets.token_bytes(n_bytes))


def compute_code_challenge(code_verifier: str) -> str:
    """Compute ``BASE64URL(SHA256(code_verifier))`` without padding.

    Example:
        >>> compute_code_challenge("dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk")
        'E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM'
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _b64url(digest)


@dataclass(frozen=True)
class PkcePair:
    """A verifier and the S256 challenge derived from it."""

    verifier: str
    challenge: str
    method: str = CHALLENGE_METHOD


def build_pkce_pair() -> PkcePair:
    """Generate a fresh verifier/challenge pair for one login attempt."""
    verifier = random_urlsafe(VERIFIER_BYTES)
    return PkcePair(verifier=verifier, challenge=compute_code_challenge(verifier))


def new_state() -> str:
    """Generate the anti-CSRF state nonce for one login attempt."""
    return random_urlsafe(STATE_BYTES)
