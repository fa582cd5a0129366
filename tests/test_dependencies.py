"""Authorization gate tests — header parsing and token verification."""

from datetime import timedelta

import pytest

from passgate.auth.dependencies import extract_bearer_token, get_authorization_context
from passgate.auth.jwt import TokenClaims
from passgate.errors import UnauthenticatedError


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc.def.ghi", "abc.def.ghi"),
        ("BEARER   abc.def.ghi ", "abc.def.ghi"),
        ("abc.def.ghi", "abc.def.ghi"),
        (None, None),
        ("", None),
        ("   ", None),
        ("Bearer ", None),
        ("bearer", None),
        ("Bearer    ", None),
        ("Basic dXNlcjpwYXNz", None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


@pytest.mark.asyncio
async def test_gate_accepts_valid_token(tokens):
    token = tokens.issue(TokenClaims(uid="u-1", code="$2b$04$x"), timedelta(minutes=5))
    context = await get_authorization_context(f"Bearer {token}", tokens)
    assert context.uid == "u-1"
    assert context.has_challenge
    assert context.expires_at is not None


@pytest.mark.asyncio
async def test_gate_context_without_code(tokens):
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(minutes=5))
    context = await get_authorization_context(token, tokens)
    assert not context.has_challenge


@pytest.mark.asyncio
async def test_gate_rejects_missing_header(tokens):
    with pytest.raises(UnauthenticatedError):
        await get_authorization_context(None, tokens)


@pytest.mark.asyncio
async def test_gate_treats_scheme_without_token_as_missing(tokens):
    with pytest.raises(UnauthenticatedError) as exc:
        await get_authorization_context("Bearer ", tokens)
    assert exc.value.message == "Authentication required"


@pytest.mark.asyncio
async def test_gate_rejects_malformed_token(tokens):
    with pytest.raises(UnauthenticatedError):
        await get_authorization_context("Bearer not-a-jwt", tokens)


@pytest.mark.asyncio
async def test_gate_rejects_expired_token(tokens):
    token = tokens.issue(TokenClaims(uid="u-1"), timedelta(seconds=-1))
    with pytest.raises(UnauthenticatedError):
        await get_authorization_context(f"Bearer {token}", tokens)
