from datetime import datetime, timedelta, timezone
from jose import jwt
from todo_api.core.config import settings
from todo_api.core.security import (
    create_access_token,
    create_user_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_verifies_only_the_original_password():
    hashed = get_password_hash("secret1")

    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_password_hashes_are_salted():
    assert get_password_hash("secret1") != get_password_hash("secret1")


def test_user_token_carries_user_id_and_expires_in_30_days():
    payload = decode_access_token(create_user_token(42))

    assert payload["sub"] == "42"
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    remaining = expires_at - datetime.now(timezone.utc)
    assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-10))

    assert decode_access_token(token) is None


def test_token_signed_with_another_key_is_rejected():
    token = jwt.encode({"sub": "1"}, "some-other-key", algorithm=settings.ALGORITHM)

    assert decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_access_token("not-a-jwt") is None
