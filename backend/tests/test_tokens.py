"""Tests for token issuance and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core import InvalidTokenError
from services.auth import TokenIssuer, get_token_issuer
from services.auth.tokens import TokenClaims

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _issuer(clock: MutableClock) -> TokenIssuer:
    return TokenIssuer(
        access_secret="access-secret-for-tests",
        refresh_secret="refresh-secret-for-tests",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
        clock=clock,
    )


def test_issue_pair_embeds_identity_and_expiry():
    issuer = _issuer(MutableClock(FIXED_NOW))

    pair = issuer.issue_pair("user-123")
    access_claims = issuer.verify_access(pair.access_token)
    refresh_claims = issuer.verify_refresh(pair.refresh_token)

    assert access_claims == TokenClaims(
        user_id="user-123",
        token_type="access",
        issued_at=FIXED_NOW,
        expires_at=FIXED_NOW + timedelta(minutes=15),
    )
    assert refresh_claims.user_id == "user-123"
    assert refresh_claims.expires_at == FIXED_NOW + timedelta(days=10)


def test_tokens_use_three_part_signed_format():
    pair = _issuer(MutableClock(FIXED_NOW)).issue_pair("user-123")

    assert pair.access_token.count(".") == 2
    assert jwt.get_unverified_header(pair.refresh_token)["alg"] == "HS256"


def test_pairs_issued_at_the_same_instant_differ():
    issuer = _issuer(MutableClock(FIXED_NOW))

    first = issuer.issue_pair("user-123")
    second = issuer.issue_pair("user-123")

    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_access_and_refresh_tokens_are_not_interchangeable():
    issuer = _issuer(MutableClock(FIXED_NOW))
    pair = issuer.issue_pair("user-123")

    with pytest.raises(InvalidTokenError):
        issuer.verify_refresh(pair.access_token)
    with pytest.raises(InvalidTokenError):
        issuer.verify_access(pair.refresh_token)


def test_access_token_expires_after_ttl():
    clock = MutableClock(FIXED_NOW)
    issuer = _issuer(clock)
    pair = issuer.issue_pair("user-123")

    clock.now = FIXED_NOW + timedelta(minutes=14, seconds=59)
    assert issuer.verify_access(pair.access_token).user_id == "user-123"

    clock.now = FIXED_NOW + timedelta(minutes=15)
    with pytest.raises(InvalidTokenError) as exc_info:
        issuer.verify_access(pair.access_token)
    assert exc_info.value.reason == "expired"

    assert issuer.verify_refresh(pair.refresh_token).user_id == "user-123"


def test_token_signed_with_other_secret_is_rejected():
    clock = MutableClock(FIXED_NOW)
    pair = _issuer(clock).issue_pair("user-123")
    other = TokenIssuer(
        access_secret="another-access-secret",
        refresh_secret="another-refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
        clock=clock,
    )

    with pytest.raises(InvalidTokenError) as exc_info:
        other.verify_refresh(pair.refresh_token)
    assert exc_info.value.reason == "signature"


def test_tampered_payload_is_rejected():
    issuer = _issuer(MutableClock(FIXED_NOW))
    header, payload, signature = issuer.issue_pair("user-123").access_token.split(".")
    forged_payload = jwt.utils.base64url_encode(
        b'{"sub":"admin","type":"access","iat":1,"exp":99999999999}'
    ).decode("ascii")

    with pytest.raises(InvalidTokenError):
        issuer.verify_access(f"{header}.{forged_payload}.{signature}")


@pytest.mark.parametrize("garbage", ["", "   ", "not-a-token", "a.b.c"])
def test_malformed_tokens_are_rejected(garbage):
    issuer = _issuer(MutableClock(FIXED_NOW))

    with pytest.raises(InvalidTokenError):
        issuer.verify_access(garbage)


def test_token_without_subject_is_rejected():
    token = jwt.encode(
        {"type": "access", "iat": FIXED_NOW, "exp": FIXED_NOW + timedelta(minutes=5)},
        "access-secret-for-tests",
        algorithm="HS256",
    )

    with pytest.raises(InvalidTokenError):
        _issuer(MutableClock(FIXED_NOW)).verify_access(token)


def test_issuer_requires_distinct_secrets():
    with pytest.raises(ValueError):
        TokenIssuer(
            access_secret="shared",
            refresh_secret="shared",
            access_ttl=timedelta(minutes=15),
            refresh_ttl=timedelta(days=10),
        )


def test_default_issuer_follows_settings():
    issuer = get_token_issuer()

    assert issuer is get_token_issuer()
    pair = issuer.issue_pair("user-123")
    assert issuer.verify_access(pair.access_token).user_id == "user-123"
