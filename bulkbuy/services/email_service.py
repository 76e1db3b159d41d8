"""Service for sending OTP emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP.

    When no SMTP host is configured the service runs in disabled mode: the
    code is logged instead of sent and every dispatch reports success, which
    keeps local development usable without a mail server.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "BulkBuy",
        otp_expire_minutes: int = 10,
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or self.smtp_username
        self.from_name = from_name
        self.otp_expire_minutes = otp_expire_minutes
        self.enabled = bool(self.smtp_host and self.from_email)

    def send_email_verification_otp(self, to_email: str, otp: str, name: str) -> bool:
        """
        Send the email verification code.

        Args:
            to_email: Recipient email
            otp: 6-digit verification code
            name: Recipient display name

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.info("Email verification OTP for %s: %s", to_email, otp)
            return True

        subject = "Verify Your Email - BulkBuy"
        html_body = self._render_html(
            heading="Email Verification",
            greeting=f"Hello {name}!",
            intro="Thank you for signing up for BulkBuy. Please use the code below to verify your email address:",
            otp=otp,
            footer="If you didn't create an account with BulkBuy, please ignore this email.",
        )
        text_body = f"""
        BulkBuy - Email Verification

        Hello {name}!

        Your verification code is: {otp}

        This code expires in {self.otp_expire_minutes} minutes.

        If you didn't create an account with BulkBuy, please ignore this email.
        """

        return self._send_email(to_email, subject, html_body, text_body)

    def send_password_reset_otp(self, to_email: str, otp: str, name: str) -> bool:
        """Send the password reset code. Returns True if sent successfully."""
        if not self.enabled:
            logger.info("Password reset OTP for %s: %s", to_email, otp)
            return True

        subject = "Password Reset - BulkBuy"
        html_body = self._render_html(
            heading="Password Reset",
            greeting=f"Hello {name}!",
            intro="We received a request to reset your password. Use the code below to continue:",
            otp=otp,
            footer="If you didn't request a password reset, you can safely ignore this email.",
        )
        text_body = f"""
        BulkBuy - Password Reset

        Hello {name}!

        Your password reset code is: {otp}

        This code expires in {self.otp_expire_minutes} minutes.

        If you didn't request a password reset, you can safely ignore this email.
        """

        return self._send_email(to_email, subject, html_body, text_body)

    def _render_html(self, *, heading: str, greeting: str, intro: str, otp: str, footer: str) -> str:
        return f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <div style="background-color: #4A90E2; padding: 30px; border-radius: 10px; text-align: center;">
                    <h1 style="color: #ffffff; margin: 0;">BulkBuy</h1>
                    <p style="color: #e0ecfa; margin-top: 10px;">{heading}</p>
                </div>

                <div style="padding: 30px 0;">
                    <h2 style="color: #1e293b; margin-bottom: 20px;">{greeting}</h2>

                    <p style="color: #475569; line-height: 1.6; margin-bottom: 20px;">{intro}</p>

                    <div style="text-align: center; margin: 30px 0;">
                        <span style="background-color: #f1f5f9; color: #1e293b; padding: 15px 30px;
                                     border-radius: 5px; display: inline-block; font-size: 28px;
                                     letter-spacing: 6px; font-weight: bold;">
                            {otp}
                        </span>
                    </div>

                    <p style="color: #64748b; font-size: 14px; margin-top: 30px;">
                        This code expires in {self.otp_expire_minutes} minutes.
                    </p>

                    <p style="color: #64748b; font-size: 14px; margin-top: 20px;">{footer}</p>
                </div>
            </body>
        </html>
        """

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            return True

        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s.", to_email)
            return False
