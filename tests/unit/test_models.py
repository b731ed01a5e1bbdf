"""Unit tests for credential and PKCE models."""

import base64
import hashlib
import re
import time

import pytest
from pydantic import ValidationError

from gdrive_mcp.auth.models import Credential, PKCEPair


def _now_ms() -> int:
    return int(time.time() * 1000)


@pytest.mark.unit
class TestCredential:
    """Tests for the Credential model."""

    def test_should_not_be_expired_when_expiry_in_future(self, valid_credential) -> None:
        assert valid_credential.is_expired() is False

    def test_should_be_expired_when_expiry_in_past(self, expired_credential) -> None:
        assert expired_credential.is_expired() is True

    def test_should_honor_expiry_buffer(self) -> None:
        credential = Credential(access_token="a", expiry_date=_now_ms() + 30_000)

        assert credential.is_expired() is False
        assert credential.is_expired(buffer_seconds=60) is True

    def test_can_refresh_requires_refresh_token(self, expired_unrefreshable_credential) -> None:
        assert expired_unrefreshable_credential.can_refresh is False
        assert Credential(access_token="a", refresh_token="r", expiry_date=0).can_refresh

    def test_should_default_token_type_to_bearer(self) -> None:
        assert Credential(access_token="a", expiry_date=0).token_type == "Bearer"

    def test_should_require_expiry_date(self) -> None:
        with pytest.raises(ValidationError):
            Credential(access_token="a")


@pytest.mark.unit
class TestCredentialFromTokenResponse:
    """Tests for building credentials from token endpoint responses."""

    def test_should_accept_expiry_date_in_milliseconds(self) -> None:
        credential = Credential.from_token_response(
            {"access_token": "t1", "refresh_token": "r1", "expiry_date": 1_700_000_000_000}
        )

        assert credential.access_token == "t1"
        assert credential.refresh_token == "r1"
        assert credential.expiry_date == 1_700_000_000_000

    def test_should_convert_oauthlib_expires_at_seconds(self) -> None:
        credential = Credential.from_token_response(
            {"access_token": "t1", "expires_at": 1_700_000_000.5}
        )

        assert credential.expiry_date == 1_700_000_000_500

    def test_should_compute_expiry_from_expires_in(self) -> None:
        before = _now_ms()
        credential = Credential.from_token_response({"access_token": "t1", "expires_in": 120})

        assert before + 120_000 <= credential.expiry_date <= _now_ms() + 120_000

    def test_should_join_list_scope(self) -> None:
        credential = Credential.from_token_response(
            {"access_token": "t1", "expires_in": 60, "scope": ["a", "b"]}
        )

        assert credential.scope == "a b"

    def test_should_treat_empty_refresh_token_as_absent(self) -> None:
        credential = Credential.from_token_response(
            {"access_token": "t1", "expires_in": 60, "refresh_token": ""}
        )

        assert credential.refresh_token is None
        assert credential.can_refresh is False


@pytest.mark.unit
class TestPKCEPair:
    """Tests for PKCE verifier/challenge generation."""

    def test_verifier_is_unpadded_base64url_of_32_bytes(self) -> None:
        pair = PKCEPair.generate()

        assert len(pair.verifier) == 43
        assert re.fullmatch(r"[A-Za-z0-9_-]+", pair.verifier)
        assert "=" not in pair.verifier

    def test_challenge_is_s256_of_verifier(self) -> None:
        pair = PKCEPair.generate()

        digest = hashlib.sha256(pair.verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert pair.challenge == expected

    def test_each_pair_is_fresh(self) -> None:
        assert PKCEPair.generate().verifier != PKCEPair.generate().verifier

    def test_should_reject_short_verifier(self) -> None:
        with pytest.raises(ValidationError):
            PKCEPair(verifier="too-short", challenge="x")
