"""Identity provider access.

Passwords, session tokens and sign-out all belong to the hosted provider
(Supabase Auth). This module narrows the provider to the handful of calls the
service needs and translates provider failures into ``AppError`` kinds:

- the provider rejected the request (bad credentials, expired token,
  duplicate email, weak password) -> authentication error carrying the
  provider's message
- the provider could not be reached or failed on its side -> external
  service error (502)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Protocol

import httpx
from supabase import AuthError, AuthRetryableError, Client, create_client
from supabase.client import ClientOptions

from backend.core.errors import AuthenticationError, ExternalServiceError

logger = logging.getLogger(__name__)

PROVIDER_NAME = 'Supabase'


@dataclass(frozen=True)
class ProviderIdentity:
    id: str
    email: str | None


class IdentityProvider(Protocol):
    def sign_up(self, email: str, password: str) -> ProviderIdentity: ...

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]: ...

    def get_user(self, token: str) -> ProviderIdentity | None: ...

    def sign_out(self, token: str) -> None: ...

    def delete_user(self, provider_id: str) -> None: ...


@contextmanager
def _provider_errors(action: str) -> Iterator[None]:
    try:
        yield
    except AuthRetryableError as exc:
        logger.warning('%s %s failed, provider unreachable: %s', PROVIDER_NAME, action, exc.message)
        raise ExternalServiceError(PROVIDER_NAME, exc.message) from exc
    except AuthError as exc:
        if (getattr(exc, 'status', 0) or 0) >= 500:
            logger.warning('%s %s failed with status %s: %s', PROVIDER_NAME, action, exc.status, exc.message)
            raise ExternalServiceError(PROVIDER_NAME, exc.message) from exc
        raise AuthenticationError(exc.message or 'Authentication failed') from exc
    except httpx.HTTPError as exc:
        logger.warning('%s %s failed: %s', PROVIDER_NAME, action, exc)
        raise ExternalServiceError(PROVIDER_NAME, str(exc) or 'Request failed') from exc


def _client_options() -> ClientOptions:
    # Sessions are neither written to storage nor refreshed. The client still holds the
    # last signed-in session in memory, so per-user calls pass their token explicitly.
    return ClientOptions(auto_refresh_token=False, persist_session=False)


class SupabaseIdentityProvider:
    def __init__(self, client: Client, admin_client: Client | None = None):
        self.client = client
        self.admin_client = admin_client

    @classmethod
    def from_settings(cls, url: str, anon_key: str, service_role_key: str = '') -> 'SupabaseIdentityProvider':
        client = create_client(url, anon_key, options=_client_options())
        admin_client = None
        if service_role_key:
            admin_client = create_client(url, service_role_key, options=_client_options())
        return cls(client, admin_client)

    def sign_up(self, email: str, password: str) -> ProviderIdentity:
        with _provider_errors('sign-up'):
            response = self.client.auth.sign_up({'email': email, 'password': password})
        if response.user is None:
            raise ExternalServiceError(PROVIDER_NAME, 'Failed to create user')
        return ProviderIdentity(id=str(response.user.id), email=response.user.email)

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        with _provider_errors('sign-in'):
            response = self.client.auth.sign_in_with_password({'email': email, 'password': password})
        if response.session is None:
            raise AuthenticationError('Invalid login credentials')
        return response.session.model_dump(mode='json')

    def get_user(self, token: str) -> ProviderIdentity | None:
        with _provider_errors('token lookup'):
            response = self.client.auth.get_user(token)
        if response is None or response.user is None:
            return None
        return ProviderIdentity(id=str(response.user.id), email=response.user.email)

    def sign_out(self, token: str) -> None:
        # Revokes the given token, not whichever session the client last stored.
        with _provider_errors('sign-out'):
            self.client.auth.admin.sign_out(token)

    def delete_user(self, provider_id: str) -> None:
        if self.admin_client is None:
            raise ExternalServiceError(PROVIDER_NAME, 'Service role key not configured; cannot delete user')
        with _provider_errors('user deletion'):
            self.admin_client.auth.admin.delete_user(provider_id)
