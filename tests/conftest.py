import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault('APP_ENV', 'testing')

from backend.auth.directory import UserDirectory  # noqa: E402
from backend.auth.identity_provider import ProviderIdentity  # noqa: E402
from backend.core.errors import AuthenticationError, ExternalServiceError  # noqa: E402
from backend.database import Base, create_db_engine, create_session_factory, ensure_user_schema  # noqa: E402
from backend.main import create_app  # noqa: E402
from backend.services.auth_service import AuthService  # noqa: E402


class FakeIdentityProvider:
    """In-memory stand-in for the hosted identity provider."""

    def __init__(self):
        self.accounts: dict[str, tuple[ProviderIdentity, str]] = {}
        self.tokens: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_delete = False

    def sign_up(self, email, password):
        self.calls.append(('sign_up', email))
        if email in self.accounts:
            raise AuthenticationError('User already registered')
        identity = ProviderIdentity(id=f'uid-{len(self.accounts) + 1}', email=email)
        self.accounts[email] = (identity, password)
        return identity

    def sign_in_with_password(self, email, password):
        self.calls.append(('sign_in_with_password', email))
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthenticationError('Invalid login credentials')
        token = self.issue_token(email)
        return {'access_token': token, 'token_type': 'bearer', 'user': {'id': account[0].id, 'email': email}}

    def get_user(self, token):
        self.calls.append(('get_user', token))
        email = self.tokens.get(token)
        if email is None:
            raise AuthenticationError('invalid JWT: unable to parse or verify signature')
        return self.accounts[email][0]

    def sign_out(self, token):
        self.calls.append(('sign_out', token))
        self.tokens.pop(token, None)

    def delete_user(self, provider_id):
        self.calls.append(('delete_user', provider_id))
        if self.fail_delete:
            raise ExternalServiceError('Supabase', 'Service role key not configured; cannot delete user')
        self.accounts = {
            email: account for email, account in self.accounts.items() if account[0].id != provider_id
        }

    def issue_token(self, email):
        token = f'token-{len(self.tokens) + 1}'
        self.tokens[token] = email
        return token

    def called(self, name):
        return [value for call, value in self.calls if call == name]


@pytest.fixture
def engine():
    engine = create_db_engine('sqlite:///:memory:')
    ensure_user_schema(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(engine):
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def auth_service(db, provider):
    return AuthService(UserDirectory(db), provider)


@pytest.fixture
def app(engine, provider):
    return create_app(
        session_factory=create_session_factory(engine),
        identity_provider=provider,
        expose_error_details=False,
    )


@pytest.fixture
def client(app):
    return TestClient(app)
