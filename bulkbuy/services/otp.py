"""One-time passcodes used for email verification and password resets."""

import hmac
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Return a 6-digit code drawn uniformly from 100000-999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def issue(now: datetime, ttl_minutes: int = 10) -> Tuple[str, datetime]:
    return generate_otp(), now + timedelta(minutes=ttl_minutes)


def is_valid(
    stored_code: Optional[str],
    stored_expiry: Optional[datetime],
    submitted: Optional[str],
    now: datetime,
) -> bool:
    if not stored_code or not stored_expiry or not submitted:
        return False
    if now > stored_expiry:
        return False
    return hmac.compare_digest(stored_code.encode("utf-8"), submitted.strip().encode("utf-8"))
