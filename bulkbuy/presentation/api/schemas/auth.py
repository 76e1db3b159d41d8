from pydantic import EmailStr, Field

from .base import CamelModel

OTP_PATTERN = r"^\d{6}$"


class RegisterPayload(CamelModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)


class VerifyEmailPayload(CamelModel):
    email: EmailStr
    otp: str = Field(pattern=OTP_PATTERN)


class EmailPayload(CamelModel):
    email: EmailStr


class LoginPayload(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class VerifyResetOtpPayload(CamelModel):
    email: EmailStr
    otp: str = Field(pattern=OTP_PATTERN)


class ResetPasswordPayload(CamelModel):
    email: EmailStr
    otp: str = Field(pattern=OTP_PATTERN)
    new_password: str = Field(min_length=6)
