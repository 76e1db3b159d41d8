from datetime import datetime, timedelta, timezone

import jwt

from bulkbuy.services.security import PasswordHasher, TokenIssuer


def test_password_hash_round_trip():
    hasher = PasswordHasher(rounds=4)
    hashed = hasher.hash("secret123")
    assert hashed != "secret123"
    assert hasher.verify("secret123", hashed)
    assert not hasher.verify("wrong-password", hashed)
    assert not hasher.verify("secret123", None)


def test_token_carries_user_id():
    tokens = TokenIssuer("secret", expire_days=30)
    token = tokens.issue("a" * 24)
    assert tokens.decode(token) == "a" * 24

    payload = jwt.decode(token, "secret", algorithms=["HS256"])
    lifetime = payload["exp"] - payload["iat"]
    assert lifetime == int(timedelta(days=30).total_seconds())


def test_expired_and_forged_tokens_are_rejected():
    tokens = TokenIssuer("secret", expire_days=30)
    expired = tokens.issue("b" * 24, now=datetime.now(timezone.utc) - timedelta(days=31))
    assert tokens.decode(expired) is None

    forged = TokenIssuer("other-secret").issue("b" * 24)
    assert tokens.decode(forged) is None
    assert tokens.decode("not-a-token") is None
