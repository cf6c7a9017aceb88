import time

import pytest

from agentdiscoveries import auth_tokens
from agentdiscoveries.auth_tokens import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
)


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")


def test_access_token_carries_user():
    token, expires_at = create_access_token(user_id=5, username="jbond", scope="user admin")
    payload = decode_access_token(token)
    assert payload["uid"] == 5
    assert payload["sub"] == "jbond"
    assert payload["scope"] == "user admin"
    assert payload["exp"] == expires_at


def test_token_types_are_not_interchangeable():
    refresh, _ = create_refresh_token(user_id=5, username="jbond")
    access, _ = create_access_token(user_id=5, username="jbond")
    with pytest.raises(TokenError):
        decode_access_token(refresh)
    with pytest.raises(TokenError):
        decode_refresh_token(access)


def test_expired_token_is_rejected(monkeypatch):
    monkeypatch.setattr(auth_tokens, "_now", lambda: int(time.time()) - 7200)
    token, _ = create_access_token(user_id=5, username="jbond", ttl=60)
    with pytest.raises(TokenError):
        decode_access_token(token)


def test_token_signed_with_other_secret_is_rejected(monkeypatch):
    token, _ = create_access_token(user_id=5, username="jbond")
    monkeypatch.setenv("JWT_SECRET", "another-secret")
    with pytest.raises(TokenError):
        decode_access_token(token)
