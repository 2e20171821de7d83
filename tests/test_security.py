"""Tests for password hashing and user/device tokens."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from penwwws.utils import (
    AuthenticationError,
    create_access_token,
    create_device_token,
    decode_access_token,
    generate_device_credentials,
    generate_url_token,
    hash_password,
    is_strong_password,
    verify_password,
)


def test_password_hash_round_trip() -> None:
    hashed = hash_password("s3cret!pass")

    assert hashed != "s3cret!pass"
    assert verify_password("s3cret!pass", hashed)
    assert not verify_password("wrong!pass1", hashed)


def test_hashes_are_salted() -> None:
    assert hash_password("s3cret!pass") != hash_password("s3cret!pass")


def test_accounts_without_password_never_verify() -> None:
    assert not verify_password("anything1!", None)
    assert not verify_password("anything1!", "")


@pytest.mark.parametrize(
    ("password", "expected"),
    [
        ("abc123!@", True),
        ("Password1?", True),
        ("abc12!", False),
        ("abcdefgh!", False),
        ("12345678!", False),
        ("abcd1234", False),
    ],
)
def test_password_strength_rule(password: str, expected: bool) -> None:
    assert is_strong_password(password) is expected


def test_user_token_carries_user_claims() -> None:
    user = SimpleNamespace(id=12, full_name="Ada Lovelace")

    payload = decode_access_token(create_access_token(subject="12", user=user))

    assert payload.user_id() == 12
    assert not payload.is_device
    assert payload.user == {"id": 12, "name": "Ada Lovelace"}
    with pytest.raises(AuthenticationError):
        payload.device_id()


def test_device_token_is_scoped_to_a_school() -> None:
    payload = decode_access_token(create_device_token(5, school_id=3))

    assert payload.is_device
    assert payload.device_id() == 5
    assert payload.school_id == 3
    with pytest.raises(AuthenticationError):
        payload.user_id()


def test_expired_and_tampered_tokens_are_rejected() -> None:
    expired = create_access_token(subject="1", expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError):
        decode_access_token(expired)

    token = create_access_token(subject="1")
    with pytest.raises(AuthenticationError):
        decode_access_token(token[:-2] + ("AA" if token[-2:] != "AA" else "BB"))


def test_generated_secrets() -> None:
    credential_id, password = generate_device_credentials()

    assert len(credential_id) == 12
    assert len(password) == 16 and password.isalnum()
    assert len(generate_url_token()) == 64
    assert generate_url_token() != generate_url_token()
