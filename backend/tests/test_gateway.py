"""Bearer header handling in front of protected routes."""

from datetime import datetime, timedelta, timezone

import pytest

from auth import authenticate
from errors import Unauthorized


@pytest.mark.parametrize(
    "header",
    [None, "", "Bearer", "Bearer   ", "Basic dXNlcjpwYXNz", "Token abc"],
)
def test_missing_or_wrong_scheme(tokens, header):
    with pytest.raises(Unauthorized) as exc:
        authenticate(header, tokens)
    assert exc.value.message == "missing token"


def test_valid_bearer_resolves_subject(tokens):
    assert authenticate(f"Bearer {tokens.issue('7')}", tokens) == "7"


def test_scheme_is_case_insensitive(tokens):
    assert authenticate(f"bearer {tokens.issue('7')}", tokens) == "7"


def test_invalid_token(tokens):
    with pytest.raises(Unauthorized) as exc:
        authenticate("Bearer not-a-jwt", tokens)
    assert exc.value.message == "invalid or expired token"


def test_expired_token(tokens):
    expired = tokens.issue("7", now=datetime.now(timezone.utc) - timedelta(hours=1, seconds=5))

    with pytest.raises(Unauthorized) as exc:
        authenticate(f"Bearer {expired}", tokens)
    assert exc.value.message == "invalid or expired token"
