import time

import pytest

from security import (
    ExpiredTokenError,
    InvalidTokenError,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)

DAY = 24 * 3600


def test_token_resolves_to_subject_immediately():
    now = time.time()
    token = issue_token(42, now=now)
    assert verify_token(token, now=now) == 42


def test_token_expires_after_thirty_days():
    now = time.time()
    token = issue_token(42, now=now)
    assert verify_token(token, now=now + 29 * DAY) == 42
    with pytest.raises(ExpiredTokenError):
        verify_token(token, now=now + 31 * DAY)


def test_tampered_token_is_invalid():
    token = issue_token(7)
    tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")
    with pytest.raises(InvalidTokenError):
        verify_token(tampered)


def test_garbage_token_is_invalid():
    with pytest.raises(InvalidTokenError):
        verify_token("not-a-token")


def test_password_hash_round_trip():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


def test_verify_password_against_malformed_hash_is_false():
    assert not verify_password("hunter22", "not-a-bcrypt-hash")
