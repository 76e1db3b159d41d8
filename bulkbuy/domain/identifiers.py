import re
import secrets

from .errors import CastError

_OBJECT_ID = re.compile(r"^[a-f\d]{24}$", re.IGNORECASE)


def new_object_id() -> str:
    """Return a fresh 24-character hex identifier."""
    return secrets.token_hex(12)


def ensure_object_id(value: object, label: str = "ID") -> str:
    if not isinstance(value, str) or not _OBJECT_ID.match(value):
        raise CastError(f"Invalid {label}")
    return value.lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()
