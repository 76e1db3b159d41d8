from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.auth_service import AuthService
from ...core.dependencies import get_activity_tracker, get_auth_service
from ...domain.errors import AuthenticationRequired
from ...domain.models import User
from ...services.presence import ActivityTracker

_bearer_scheme = HTTPBearer(auto_error=False)


def _authenticate(credentials: Optional[HTTPAuthorizationCredentials], auth_service: AuthService) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationRequired("Access denied. No token provided.")
    return auth_service.authenticate_token(credentials.credentials)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> User:
    """Resolve the bearer token and stamp the caller's activity without waiting on it."""
    user = _authenticate(credentials, auth_service)
    tracker.record(user.id)
    return user


async def get_departing_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    # Logout must not queue an activity stamp that would flip the user back online.
    return _authenticate(credentials, auth_service)
