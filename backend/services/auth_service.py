"""Authentication flows.

Every flow pairs a call to the identity provider with a point query on the
local user directory. The provider owns credentials and sessions; the
directory owns the role and display name of each identity, joined by email.
"""

import logging
from threading import Lock
from typing import Any

from pydantic import BaseModel, Field

from backend.auth.directory import UserDirectory, normalize_email
from backend.auth.identity_provider import IdentityProvider, ProviderIdentity
from backend.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from backend.models.user import User, UserRole

logger = logging.getLogger(__name__)


class SessionUser(BaseModel):
    """Minimal profile used for authorization decisions."""
    id: int
    email: str
    role: UserRole

    class Config:
        from_attributes = True


class UserProfile(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str | None = Field(default=None, serialization_alias='firstName')
    last_name: str | None = Field(default=None, serialization_alias='lastName')

    class Config:
        from_attributes = True


def require_credentials(email: str | None, password: str | None) -> str:
    normalized = normalize_email(email or '')
    if not normalized or not password:
        raise ValidationError('Email and password are required')
    return normalized


def parse_role(role: str | None) -> UserRole:
    if role is None or not role.strip():
        return UserRole.STAFF
    try:
        return UserRole(role.strip().lower())
    except ValueError as exc:
        allowed = ', '.join(member.value for member in UserRole)
        raise ValidationError(f'Role must be one of: {allowed}', errors={'role': 'invalid role'}) from exc


class AuthService:
    def __init__(self, directory: UserDirectory, provider: IdentityProvider, bootstrap_lock: 'Lock | None' = None):
        self.directory = directory
        self.provider = provider
        self.bootstrap_lock = bootstrap_lock or Lock()

    def verify_session(self, token: str) -> SessionUser:
        if not token:
            raise AuthenticationError('No token provided')

        identity = self.provider.get_user(token)
        if identity is None:
            raise AuthenticationError('Invalid session')
        if not identity.email:
            raise AuthenticationError('Session has no associated email')

        user = self.directory.get_by_email(identity.email)
        if user is None:
            logger.warning('Identity %s has no local profile for %s', identity.id, identity.email)
            raise AuthenticationError('User not found in database')

        return SessionUser.model_validate(user)

    def register(
        self,
        email: str | None,
        password: str | None,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
        caller: SessionUser | None = None,
    ) -> SessionUser:
        email = require_credentials(email, password)
        resolved_role = parse_role(role)

        if resolved_role is UserRole.ADMIN:
            if caller is None:
                raise AuthenticationError('Authentication required')
            if caller.role is not UserRole.ADMIN:
                raise AuthorizationError('Only admins can create admin accounts')

        return self._create_account(email, password, resolved_role, first_name, last_name)

    def login(self, email: str | None, password: str | None) -> dict[str, Any]:
        email = require_credentials(email, password)

        session = self.provider.sign_in_with_password(email, password)

        user = self.directory.get_by_email(email)
        if user is None:
            logger.warning('Login for %s succeeded at the provider but no local profile exists', email)
            raise AuthenticationError('User not found in database')

        logger.info('User logged in: %s (role: %s)', user.email, user.role.value)
        return {'user': UserProfile.model_validate(user), 'session': session}

    def logout(self, token: str | None) -> None:
        if not token:
            raise AuthenticationError('No token provided')
        self.provider.sign_out(token)

    def create_initial_admin(self, email: str | None, password: str | None) -> SessionUser:
        """Create the first admin account without an admin session.

        Refuses once any admin exists. The lock serialises concurrent
        bootstrap calls within this process only.
        """
        email = require_credentials(email, password)

        with self.bootstrap_lock:
            if self.directory.admin_exists():
                raise ConflictError('Admin user already exists')
            return self._create_account(email, password, UserRole.ADMIN)

    def _create_account(
        self,
        email: str,
        password: str,
        role: UserRole,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> SessionUser:
        identity = self.provider.sign_up(email, password)

        try:
            user: User = self.directory.create(email, role=role, first_name=first_name, last_name=last_name)
        except AppError:
            self._discard_identity(identity, email)
            raise

        logger.info('User registered: %s (role: %s)', user.email, user.role.value)
        return SessionUser.model_validate(user)

    def _discard_identity(self, identity: ProviderIdentity, email: str) -> None:
        try:
            self.provider.delete_user(identity.id)
        except AppError as exc:
            logger.error(
                'Profile insert failed for %s and provider identity %s could not be removed: %s',
                email,
                identity.id,
                exc.message,
            )
        else:
            logger.warning('Profile insert failed for %s; removed provider identity %s', email, identity.id)
