"""Password hashing and bearer token primitives."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

# bcrypt ignores everything after the 72nd byte and newer releases refuse it.
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing for account passwords."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except ValueError:
            return False


class TokenIssuer:
    """Signs and verifies HS256 bearer tokens carrying a user id."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", expire_days: int = 30) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.expire_days = expire_days

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "iat": issued_at,
            "exp": issued_at + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Optional[str]:
        """
        Return the user id carried by ``token``.

        Returns:
            The ``sub`` claim, or ``None`` when the token is malformed, forged
            or expired.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None
        subject = payload.get("sub")
        return subject if isinstance(subject, str) else None
