from types import SimpleNamespace

import httpx
import pytest
from supabase import AuthError, AuthRetryableError

from backend.auth.identity_provider import ProviderIdentity, SupabaseIdentityProvider
from backend.core.errors import AppError, ErrorKind


class FakeAuthError(AuthError):
    def __init__(self, message, status=400):
        Exception.__init__(self, message)
        self.message = message
        self.status = status


class FakeRetryableError(AuthRetryableError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message
        self.status = 0


class FakeSession:
    def __init__(self, access_token):
        self.access_token = access_token

    def model_dump(self, mode='python'):
        return {'access_token': self.access_token, 'token_type': 'bearer'}


class FakeAdminApi:
    def __init__(self):
        self.signed_out = []
        self.deleted = []

    def sign_out(self, token):
        self.signed_out.append(token)

    def delete_user(self, provider_id):
        self.deleted.append(provider_id)


class FakeAuthApi:
    def __init__(self):
        self.admin = FakeAdminApi()
        self.sign_up_response = SimpleNamespace(user=SimpleNamespace(id='uid-1', email='a@x.com'))
        self.sign_in_response = SimpleNamespace(session=FakeSession('jwt-1'))
        self.user_response = SimpleNamespace(user=SimpleNamespace(id='uid-1', email='a@x.com'))
        self.error = None

    def _answer(self, response):
        if self.error is not None:
            raise self.error
        return response

    def sign_up(self, credentials):
        return self._answer(self.sign_up_response)

    def sign_in_with_password(self, credentials):
        return self._answer(self.sign_in_response)

    def get_user(self, token):
        return self._answer(self.user_response)


def _client():
    return SimpleNamespace(auth=FakeAuthApi())


def test_sign_up_returns_provider_identity() -> None:
    provider = SupabaseIdentityProvider(_client())

    assert provider.sign_up('a@x.com', 'p1') == ProviderIdentity(id='uid-1', email='a@x.com')


def test_sign_up_without_user_is_an_external_failure() -> None:
    client = _client()
    client.auth.sign_up_response = SimpleNamespace(user=None)

    with pytest.raises(AppError) as exception_info:
        SupabaseIdentityProvider(client).sign_up('a@x.com', 'p1')

    assert exception_info.value.kind is ErrorKind.EXTERNAL_SERVICE
    assert exception_info.value.message == 'Supabase: Failed to create user'


def test_sign_in_returns_serialized_session() -> None:
    provider = SupabaseIdentityProvider(_client())

    assert provider.sign_in_with_password('a@x.com', 'p1') == {'access_token': 'jwt-1', 'token_type': 'bearer'}


def test_sign_in_without_session_is_rejected() -> None:
    client = _client()
    client.auth.sign_in_response = SimpleNamespace(session=None)

    with pytest.raises(AppError) as exception_info:
        SupabaseIdentityProvider(client).sign_in_with_password('a@x.com', 'p1')

    assert exception_info.value.kind is ErrorKind.AUTHENTICATION
    assert exception_info.value.message == 'Invalid login credentials'


def test_get_user_returns_none_for_empty_answer() -> None:
    client = _client()
    client.auth.user_response = None

    assert SupabaseIdentityProvider(client).get_user('jwt-1') is None


def test_sign_out_revokes_the_given_token() -> None:
    client = _client()

    SupabaseIdentityProvider(client).sign_out('jwt-1')

    assert client.auth.admin.signed_out == ['jwt-1']


def test_delete_user_uses_service_role_client() -> None:
    admin_client = _client()

    SupabaseIdentityProvider(_client(), admin_client).delete_user('uid-9')

    assert admin_client.auth.admin.deleted == ['uid-9']


def test_delete_user_requires_service_role_client() -> None:
    with pytest.raises(AppError) as exception_info:
        SupabaseIdentityProvider(_client()).delete_user('uid-9')

    assert exception_info.value.kind is ErrorKind.EXTERNAL_SERVICE


@pytest.mark.parametrize(
    ('error', 'kind', 'message'),
    [
        (FakeAuthError('Invalid login credentials'), ErrorKind.AUTHENTICATION, 'Invalid login credentials'),
        (FakeAuthError('User already registered', status=422), ErrorKind.AUTHENTICATION, 'User already registered'),
        (FakeAuthError('upstream down', status=503), ErrorKind.EXTERNAL_SERVICE, 'Supabase: upstream down'),
        (FakeRetryableError('timed out'), ErrorKind.EXTERNAL_SERVICE, 'Supabase: timed out'),
        (httpx.ConnectError('connection refused'), ErrorKind.EXTERNAL_SERVICE, 'Supabase: connection refused'),
    ],
)
def test_provider_failures_are_translated(error, kind, message) -> None:
    client = _client()
    client.auth.error = error

    with pytest.raises(AppError) as exception_info:
        SupabaseIdentityProvider(client).sign_in_with_password('a@x.com', 'p1')

    assert exception_info.value.kind is kind
    assert exception_info.value.message == message
