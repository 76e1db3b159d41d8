from typing import Protocol


class MailSender(Protocol):
    """Outbound mail capability used by the auth flows.

    Each method returns ``True`` when the message was handed to the transport.
    """

    def send_email_verification_otp(self, to_email: str, otp: str, name: str) -> bool:
        ...

    def send_password_reset_otp(self, to_email: str, otp: str, name: str) -> bool:
        ...
