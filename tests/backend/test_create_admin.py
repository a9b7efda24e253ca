import json
from types import SimpleNamespace

import pytest

from backend import create_admin
from backend.core import config


@pytest.fixture
def configured(monkeypatch, provider):
    monkeypatch.setattr(config, 'DATABASE_URL', 'sqlite:///:memory:')
    monkeypatch.setattr(config, 'DATABASE_SSL', False)
    monkeypatch.setattr(config, 'SUPABASE_URL', 'https://example.supabase.co')
    monkeypatch.setattr(config, 'SUPABASE_ANON_KEY', 'anon-key')
    monkeypatch.setattr(config, 'INITIAL_ADMIN_EMAIL', 'owner@x.com')
    monkeypatch.setattr(config, 'INITIAL_ADMIN_PASSWORD', '')
    monkeypatch.setattr(
        create_admin,
        'SupabaseIdentityProvider',
        SimpleNamespace(from_settings=lambda *args: provider),
    )
    return provider


def test_main_creates_admin_from_arguments(configured, capsys) -> None:
    assert create_admin.main(['Root@X.com', 'secret']) == 0

    printed = json.loads(capsys.readouterr().out)
    assert printed == {'id': 1, 'email': 'root@x.com', 'role': 'admin'}
    assert configured.called('sign_up') == ['root@x.com']


def test_main_fails_without_password(configured, capsys) -> None:
    assert create_admin.main([]) == 1

    assert 'Email and password are required' in capsys.readouterr().err
    assert configured.calls == []


def test_main_requires_database_url(configured, monkeypatch) -> None:
    monkeypatch.setattr(config, 'DATABASE_URL', '')

    with pytest.raises(RuntimeError):
        create_admin.main(['root@x.com', 'secret'])
