from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ....application.services.auth_service import AuthService
from ....core.dependencies import get_auth_service
from ....domain.models import User
from ...api.dependencies import get_current_user, get_departing_user
from ...api.schemas.auth import (
    EmailPayload,
    LoginPayload,
    RegisterPayload,
    ResetPasswordPayload,
    VerifyEmailPayload,
    VerifyResetOtpPayload,
)
from ...api.serializers import serialize_auth_user, serialize_profile

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    result = service.register(payload.name, payload.email, payload.password)
    return {
        "message": "Registration successful! Please check your email for the verification code.",
        "userId": result.user_id,
        "email": result.email,
        "requiresVerification": result.requires_verification,
    }


@router.post("/verify-email")
async def verify_email(
    payload: VerifyEmailPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    result = service.verify_email(payload.email, payload.otp)
    return {
        "message": "Email verified successfully! You can now log in.",
        "token": result.token,
        "user": serialize_auth_user(result.user),
    }


@router.post("/resend-verification-otp")
async def resend_verification_otp(
    payload: EmailPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    service.resend_verification_otp(payload.email)
    return {"message": "Verification code sent to your email"}


@router.post("/login")
async def login(
    payload: LoginPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    result = service.login(payload.email, payload.password)
    return {
        "message": "Login successful",
        "token": result.token,
        "user": serialize_auth_user(result.user, include_presence=True),
    }


@router.post("/forgot-password")
async def forgot_password(
    payload: EmailPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    service.forgot_password(payload.email)
    return {"message": "Password reset code sent to your email"}


@router.post("/verify-reset-otp")
async def verify_reset_otp(
    payload: VerifyResetOtpPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    reset_token = service.verify_reset_otp(payload.email, payload.otp)
    return {
        "message": "OTP verified successfully. You can now reset your password.",
        "resetToken": reset_token,
    }


@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordPayload,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    service.reset_password(payload.email, payload.otp, payload.new_password)
    return {"message": "Password reset successfully. You can now log in with your new password."}


@router.post("/logout")
async def logout(
    user: User = Depends(get_departing_user),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    service.logout(user.id)
    return {"message": "Logout successful"}


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return {"user": {**serialize_profile(user), "isEmailVerified": user.is_email_verified}}
