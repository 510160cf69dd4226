"""Tests for PKCE pair and state nonce generation."""

from __future__ import annotations

import base64
import dataclasses
import hashlib
import re

import pytest

from pajama.oauth.pkce import (
    PkcePair,
    build_pkce_pair,
    compute_code_challenge,
    new_state,
    random_urlsafe,
)

_URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestRandomUrlsafe:
    def test_alphabet_and_no_padding(self) -> None:
        for n in (1, 16, 18, 31, 64):
            value = random_urlsafe(n)
            assert _URLSAFE.match(value)
            assert "=" not in value

    def test_length_matches_unpadded_base64(self) -> None:
        # ceil(4n/3) characters without padding
        assert len(random_urlsafe(18)) == 24
        assert len(random_urlsafe(64)) == 86

    def test_values_differ(self) -> None:
        assert random_urlsafe(32) != random_urlsafe(32)


class TestPkcePair:
    def test_verifier_length_within_rfc_bounds(self) -> None:
        for _ in range(50):
            pair = build_pkce_pair()
            assert 43 <= len(pair.verifier) <= 128

    def test_challenge_is_sha256_of_verifier(self) -> None:
        pair = build_pkce_pair()
        digest = hashlib.sha256(pair.verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert pair.challenge == expected

    def test_method_is_s256(self) -> None:
        assert build_pkce_pair().method == "S256"

    def test_pairs_are_unique(self) -> None:
        first, second = build_pkce_pair(), build_pkce_pair()
        assert first.verifier != second.verifier
        assert first.challenge != second.challenge

    def test_url_safe(self) -> None:
        pair = build_pkce_pair()
        assert _URLSAFE.match(pair.verifier)
        assert _URLSAFE.match(pair.challenge)

    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert compute_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_pair_is_immutable(self) -> None:
        pair = PkcePair(verifier="v" * 43, challenge="c")
        with pytest.raises(dataclasses.FrozenInstanceError):
            pair.verifier = "other"  # type: ignore[misc]


class TestState:
    def test_state_has_at_least_16_bytes_of_entropy(self) -> None:
        state = new_state()
        padded = state + "=" * (-len(state) % 4)
        assert len(base64.urlsafe_b64decode(padded)) >= 16

    def test_states_are_unique(self) -> None:
        assert len({new_state() for _ in range(100)}) == 100
