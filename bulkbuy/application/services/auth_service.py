from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ...core.clock import Clock, utcnow
from ...domain.errors import (
    AccountDeactivated,
    AlreadyVerified,
    AuthenticationRequired,
    DuplicateKey,
    EmailNotVerified,
    InvalidCredentials,
    InvalidOrExpiredOTP,
    MailDeliveryError,
    NotFound,
    ValidationError,
)
from ...domain.identifiers import normalize_email
from ...domain.models import User
from ...domain.ports.mail import MailSender
from ...domain.ports.persistence import UserRepository
from ...services import otp
from ...services.security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RegistrationResult:
    user_id: str
    email: str
    requires_verification: bool = True


@dataclass(slots=True)
class AuthResult:
    token: str
    user: User


class AuthService:
    """Registration, email verification, login and password recovery."""

    def __init__(
        self,
        users: UserRepository,
        mailer: MailSender,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        *,
        otp_expire_minutes: int = 10,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._mailer = mailer
        self._hasher = hasher
        self._tokens = tokens
        self._otp_ttl = otp_expire_minutes
        self._clock = clock

    def register(self, name: str, email: str, password: str) -> RegistrationResult:
        """
        Create an unverified account and mail its verification code.

        Raises:
            DuplicateKey: If the email is already registered
            MailDeliveryError: If the code could not be sent; the account is removed
        """
        email = normalize_email(email)
        if self._users.get_user_by_email(email):
            raise DuplicateKey("User already exists with this email", field="email")

        code, expires_at = otp.issue(self._clock(), self._otp_ttl)
        user = self._users.create_user(
            name.strip(),
            email,
            self._hasher.hash(password),
            email_verification_otp=code,
            email_verification_otp_expires=expires_at,
        )

        if not self._dispatch(self._mailer.send_email_verification_otp, user, code):
            self._users.delete_user(user.id)
            raise MailDeliveryError("Failed to send verification email. Please try again.")

        logger.info("Registered user %s; verification pending.", user.id)
        return RegistrationResult(user_id=user.id, email=user.email)

    def verify_email(self, email: str, code: str) -> AuthResult:
        user = self._users.get_user_by_email(normalize_email(email), include_secrets=True)
        if not user:
            raise NotFound("User not found")
        if user.is_email_verified:
            raise AlreadyVerified("Email is already verified")
        if not otp.is_valid(user.email_verification_otp, user.email_verification_otp_expires, code, self._clock()):
            raise InvalidOrExpiredOTP()

        verified = self._users.update_user(
            user.id,
            {
                "is_email_verified": True,
                "email_verification_otp": None,
                "email_verification_otp_expires": None,
            },
        )
        if not verified:
            raise NotFound("User not found")
        return AuthResult(token=self._tokens.issue(verified.id), user=verified)

    def resend_verification_otp(self, email: str) -> None:
        user = self._users.get_user_by_email(normalize_email(email))
        if not user:
            raise NotFound("User not found")
        if user.is_email_verified:
            raise AlreadyVerified("Email is already verified")

        code, expires_at = otp.issue(self._clock(), self._otp_ttl)
        self._users.update_user(
            user.id,
            {"email_verification_otp": code, "email_verification_otp_expires": expires_at},
        )
        if not self._dispatch(self._mailer.send_email_verification_otp, user, code):
            raise MailDeliveryError("Failed to send verification email. Please try again.")

    def login(self, email: str, password: str) -> AuthResult:
        user = self._users.get_user_by_email(normalize_email(email), include_secrets=True)
        if not user:
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountDeactivated()
        if not user.is_email_verified:
            raise EmailNotVerified(user.email)
        if not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentials()

        now = self._clock()
        current = self._users.update_user(user.id, {"last_login": now}) or user
        try:
            current = self._users.update_user(
                user.id,
                {"is_online": True, "last_activity": now, "last_login": now},
            ) or current
        except Exception:
            logger.exception("Failed to mark user %s online after login.", user.id)

        return AuthResult(token=self._tokens.issue(user.id), user=current)

    def logout(self, user_id: str) -> None:
        try:
            self._users.update_user(user_id, {"is_online": False, "last_activity": self._clock()})
        except Exception:
            logger.exception("Failed to mark user %s offline on logout.", user_id)

    def forgot_password(self, email: str) -> None:
        user = self._users.get_user_by_email(normalize_email(email))
        if not user:
            raise NotFound("User not found with this email")
        if not user.is_email_verified:
            raise ValidationError("Please verify your email first")

        code, expires_at = otp.issue(self._clock(), self._otp_ttl)
        self._users.update_user(
            user.id,
            {"password_reset_otp": code, "password_reset_otp_expires": expires_at},
        )
        if not self._dispatch(self._mailer.send_password_reset_otp, user, code):
            raise MailDeliveryError("Failed to send password reset email. Please try again.")

    def verify_reset_otp(self, email: str, code: str) -> str:
        """Check a reset code without consuming it; the code doubles as the reset token."""
        user = self._require_reset_code(email, code)
        return user.password_reset_otp or code

    def reset_password(self, email: str, code: str, new_password: str) -> None:
        user = self._require_reset_code(email, code)
        self._users.update_user(
            user.id,
            {
                "password_hash": self._hasher.hash(new_password),
                "password_reset_otp": None,
                "password_reset_otp_expires": None,
            },
        )
        logger.info("Password reset for user %s.", user.id)

    def authenticate_token(self, token: str) -> User:
        user_id = self._tokens.decode(token)
        if not user_id:
            raise AuthenticationRequired("Invalid or expired token")
        user = self._users.get_user_by_id(user_id)
        if not user:
            raise AuthenticationRequired("User not found")
        if not user.is_active:
            raise AccountDeactivated()
        return user

    def _require_reset_code(self, email: str, code: str) -> User:
        user = self._users.get_user_by_email(normalize_email(email), include_secrets=True)
        if not user:
            raise NotFound("User not found")
        if not otp.is_valid(user.password_reset_otp, user.password_reset_otp_expires, code, self._clock()):
            raise InvalidOrExpiredOTP()
        return user

    @staticmethod
    def _dispatch(send: Callable[[str, str, str], bool], user: User, code: str) -> bool:
        try:
            return bool(send(user.email, code, user.name))
        except Exception:
            logger.exception("Mail transport raised while sending to %s.", user.email)
            return False
