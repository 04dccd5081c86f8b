from datetime import timedelta

import pytest
from fastapi import HTTPException

from paygate.core.config import Settings
from paygate.core.security import (
    authenticate_admin,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


@pytest.fixture(scope="module")
def settings():
    return Settings(security={"secret_key": "unit-test-secret", "admin_password_hash": hash_password("hunter22")})


def test_password_hash_round_trip():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)
    assert not verify_password("hunter22", "not-a-bcrypt-hash")


def test_authenticate_admin(settings):
    assert authenticate_admin(settings, "admin", "hunter22")
    assert not authenticate_admin(settings, "root", "hunter22")
    assert not authenticate_admin(settings, "admin", "wrong")


def test_admin_login_disabled_without_hash():
    assert not authenticate_admin(Settings(), "admin", "anything")


def test_access_token_round_trip(settings):
    token = create_access_token("admin", settings=settings)
    data = decode_access_token(token, settings)
    assert data.username == "admin"
    assert data.role == "admin"


def test_expired_or_foreign_tokens_are_rejected(settings):
    expired = create_access_token("admin", expires_delta=timedelta(seconds=-1), settings=settings)
    with pytest.raises(HTTPException) as excinfo:
        decode_access_token(expired, settings)
    assert excinfo.value.status_code == 401

    other = Settings(security={"secret_key": "another-secret"})
    with pytest.raises(HTTPException):
        decode_access_token(create_access_token("admin", settings=other), settings)
