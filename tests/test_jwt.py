"""TokenService tests — signing, claims, expiry."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from passgate.auth.jwt import (
    InvalidTokenError,
    TokenClaims,
    TokenService,
    reset_token_ttl,
    session_token_ttl,
)

OTHER_SECRET = "another-secret-0123456789abcdef0123456789"


def test_issue_then_verify(tokens):
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(minutes=5))
    claims = tokens.verify(token)
    assert claims.uid == "u-1"
    assert claims.code is None
    assert claims.jti is None


def test_code_and_jti_round_trip(tokens):
    token = tokens.issue(
        TokenClaims(uid="u-1", code="$2b$04$hash", jti="nonce"),
        timedelta(minutes=5),
    )
    claims = tokens.verify(token)
    assert claims.code == "$2b$04$hash"
    assert claims.jti == "nonce"


def test_expiry_is_embedded(tokens):
    before = datetime.now(timezone.utc)
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(hours=2))
    exp = tokens.verify(token).exp
    assert before + timedelta(hours=2) - timedelta(seconds=5) <= exp
    assert exp <= before + timedelta(hours=2, seconds=5)


def test_expired_token_rejected(tokens):
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(seconds=-1))
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_wrong_signature_rejected(tokens):
    forged = TokenService(OTHER_SECRET).issue(TokenClaims(uid="u-1"), timedelta(minutes=5))
    with pytest.raises(InvalidTokenError):
        tokens.verify(forged)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer x.y.z"])
def test_malformed_token_rejected(tokens, garbage):
    with pytest.raises(InvalidTokenError):
        tokens.verify(garbage)


def test_tampered_payload_rejected(tokens):
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(minutes=5))
    header, payload, sig = token.split(".")
    other = tokens.issue(TokenClaims(uid="u-2"), timedelta(minutes=5))
    with pytest.raises(InvalidTokenError):
        tokens.verify(".".join([header, other.split(".")[1], sig]))


def test_missing_uid_rejected(tokens):
    token = jwt.encode(
        {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        tokens._secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_missing_exp_rejected(tokens):
    token = jwt.encode({"uid": "u-1"}, tokens._secret, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_none_algorithm_rejected(tokens):
    token = jwt.encode(
        {"uid": "u-1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        None,
        algorithm="none",
    )
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_all_failures_share_one_message(tokens):
    expired = tokens.issue(TokenClaims(uid="u-1"), timedelta(seconds=-1))
    messages = set()
    for bad in (expired, "garbage", TokenService(OTHER_SECRET).issue(TokenClaims(uid="u"), timedelta(minutes=1))):
        with pytest.raises(InvalidTokenError) as exc:
            tokens.verify(bad)
        messages.add(str(exc.value))
    assert len(messages) == 1


def test_ttls_come_from_settings():
    assert session_token_ttl() == timedelta(days=365)
    assert reset_token_ttl() == timedelta(minutes=30)
