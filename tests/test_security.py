from datetime import datetime, timedelta, timezone

import pytest

from bustracker.errors import InvalidCredential
from bustracker.security import TokenCodec, hash_password, utcnow, verify_password

T0 = datetime(2024, 5, 1, 12, 0, 0)


def test_round_trip():
    codec = TokenCodec("s3cret")
    assert codec.verify(codec.issue("user-42")) == "user-42"


def test_tampered_body_is_rejected():
    codec = TokenCodec("s3cret")
    other = codec.issue("admin-1")
    header, _, sig = codec.issue("user-42").split(".")
    forged = ".".join([header, other.split(".")[1], sig])
    with pytest.raises(InvalidCredential):
        codec.verify(forged)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "!!.??.**"])
def test_malformed_tokens(token):
    with pytest.raises(InvalidCredential):
        TokenCodec("s3cret").verify(token)


def test_wrong_secret():
    token = TokenCodec("one").issue("user-42")
    with pytest.raises(InvalidCredential):
        TokenCodec("two").verify(token)


def test_expiry_uses_injected_clock():
    token = TokenCodec("s3cret", expiry_hours=24, clock=lambda: T0).issue("user-42")

    later = TokenCodec("s3cret", expiry_hours=24, clock=lambda: T0 + timedelta(hours=23))
    assert later.verify(token) == "user-42"

    too_late = TokenCodec("s3cret", expiry_hours=24, clock=lambda: T0 + timedelta(hours=25))
    with pytest.raises(InvalidCredential) as exc:
        too_late.verify(token)
    assert exc.value.context["reason"] == "expired"


def test_codec_refuses_bad_configuration():
    with pytest.raises(ValueError):
        TokenCodec("")
    with pytest.raises(ValueError):
        TokenCodec("s3cret", expiry_hours=0)


def test_password_hashing():
    stored = hash_password("secret123")
    assert stored != hash_password("secret123")
    assert verify_password("secret123", stored)
    assert not verify_password("secret124", stored)
    assert not verify_password("secret123", "no-colon-here")


def test_utcnow_is_naive_utc():
    now = utcnow()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)
