import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth.directory import UserDirectory
from backend.auth.identity_provider import IdentityProvider
from backend.core.errors import AuthenticationError, AuthorizationError
from backend.database import get_db
from backend.models.user import UserRole
from backend.services.auth_service import AuthService, SessionUser

logger = logging.getLogger(__name__)

# Missing or non-Bearer headers are reported through the error envelope below.
security = HTTPBearer(auto_error=False)


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_auth_service(
    request: Request,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthService:
    return AuthService(UserDirectory(db), provider, request.app.state.bootstrap_lock)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return credentials.credentials


def authenticate(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionUser:
    return auth_service.verify_session(token)


def check_role(user: SessionUser | None, role: UserRole) -> SessionUser:
    if user is None:
        raise AuthenticationError("Authentication required")
    if user.role is not role:
        logger.info("Denied %s (role %s); %s role required", user.email, user.role.value, role.value)
        if role is UserRole.ADMIN:
            raise AuthorizationError("Admin access required")
        raise AuthorizationError("Insufficient role")
    return user


class RoleChecker:
    """Dependency that admits only sessions holding ``role``.

    Usage:
        @router.post("/register")
        def register(current_user: SessionUser = Depends(RoleChecker(UserRole.ADMIN))):
            ...
    """

    def __init__(self, role: UserRole):
        self.role = role

    def __call__(self, user: SessionUser = Depends(authenticate)) -> SessionUser:
        return check_role(user, self.role)


require_admin = RoleChecker(UserRole.ADMIN)
