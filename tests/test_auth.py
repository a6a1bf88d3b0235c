"""
Tests for registration, login, session tokens and password resets.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from analysis.threads import ThreadManager
from core.auth import (
    AuthService,
    RegisterRequest,
    hash_password,
    sign_auth_token,
    verify_auth_token,
    verify_password,
)
from core.errors import AuthError, ConflictError
from core.workspace_manager import WorkspaceManager
from data import store


@pytest.fixture(autouse=True)
def auth_env(monkeypatch):
    monkeypatch.setenv('JWT_SECRET', 'test-secret')
    # Fast hashes for tests
    monkeypatch.setattr('core.auth.BCRYPT_ROUNDS', 4)


@pytest.fixture
def service(engine):
    return AuthService(engine, workspaces=WorkspaceManager(engine, threads=ThreadManager(progress_delay=0)))


def _register(service, email='grace@example.com', password='s3cret-pass'):
    return service.register('Grace', 'Hopper', email, '+1 555 0199', password)


class TestPasswordsAndTokens:
    def test_hash_and_verify(self):
        hashed = hash_password('correct horse')

        assert hashed != 'correct horse'
        assert verify_password('correct horse', hashed) is True
        assert verify_password('wrong horse', hashed) is False

    def test_malformed_hash(self):
        assert verify_password('anything', 'not-a-real-hash') is False

    def test_token_round_trip(self):
        token = sign_auth_token({'userId': '7', 'email': 'a@b.co'})
        claims = verify_auth_token(token)

        assert claims['userId'] == '7'
        assert 'exp' in claims

    def test_tampered_token(self):
        token = sign_auth_token({'userId': '7'})
        assert verify_auth_token(token + 'x') is None

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv('JWT_SECRET')
        with pytest.raises(RuntimeError, match='JWT_SECRET'):
            sign_auth_token({'userId': '7'})


class TestRegisterRequest:
    def test_normalizes(self):
        req = RegisterRequest(firstName=' Grace ', lastName='Hopper', email=' Grace@Example.com ',
                              phone='+1 (555) 0199', password='s3cret-pass')

        assert req.firstName == 'Grace'
        assert req.email == 'grace@example.com'

    @pytest.mark.parametrize('field,value', [
        ('email', 'not-an-email'),
        ('phone', 'call me maybe'),
        ('password', 'short'),
        ('firstName', 'G'),
    ])
    def test_rejects(self, field, value):
        data = dict(firstName='Grace', lastName='Hopper', email='grace@example.com',
                    phone='+1 555 0199', password='s3cret-pass')
        data[field] = value
        with pytest.raises(ValidationError):
            RegisterRequest(**data)


class TestAuthService:
    def test_register_creates_workspace(self, service, engine):
        result = _register(service, email='Grace@Example.com')

        user = result['user']
        assert user['email'] == 'grace@example.com'
        assert user['onboardingStatus'] == 'in_progress'
        assert user['workspaceId'] is not None
        assert verify_auth_token(result['token'])['email'] == 'grace@example.com'

        with store.session_scope(engine) as session:
            workspace = store.get_workspace_by_slug(session, 'grace')
            assert workspace.name == "Grace's Workspace"
            assert store.get_brain_for_workspace(session, workspace.id) is not None

    def test_register_duplicate(self, service):
        _register(service)
        with pytest.raises(ConflictError, match='already exists'):
            _register(service, email='GRACE@example.com')

    def test_register_rolls_back_user_when_workspace_fails(self, service, engine):
        with patch('core.workspace_manager.store.get_or_create_brain', side_effect=RuntimeError('disk full')):
            with pytest.raises(RuntimeError, match='disk full'):
                _register(service)

        with store.session_scope(engine) as session:
            assert store.get_user_by_email(session, 'grace@example.com') is None
            assert store.get_workspace_by_slug(session, 'grace') is None

        # The address is free again once the failure is gone
        result = _register(service)
        assert result['user']['workspaceId'] is not None

    def test_login(self, service):
        _register(service)

        result = service.login('Grace@Example.com', 's3cret-pass')

        assert result['user']['firstName'] == 'Grace'
        assert service.get_user_from_token(result['token']).email == 'grace@example.com'

    def test_login_wrong_password(self, service):
        _register(service)
        with pytest.raises(AuthError, match='Incorrect email or password.'):
            service.login('grace@example.com', 'wrong-pass')

    def test_login_unknown_user(self, service):
        with pytest.raises(AuthError):
            service.login('nobody@example.com', 's3cret-pass')

    def test_get_user_from_bad_tokens(self, service):
        assert service.get_user_from_token(None) is None
        assert service.get_user_from_token('garbage') is None
        assert service.get_user_from_token(sign_auth_token({'email': 'x@y.z'})) is None
        assert service.get_user_from_token(sign_auth_token({'userId': 'abc'})) is None


class TestPasswordReset:
    def _token(self, engine, email='grace@example.com'):
        with store.session_scope(engine) as session:
            return store.get_user_by_email(session, email).reset_token

    def test_unknown_email_still_succeeds(self, service):
        assert service.request_password_reset('nobody@example.com') is True

    def test_full_reset(self, service, engine):
        _register(service)
        assert service.request_password_reset('Grace@example.com') is True
        token = self._token(engine)
        assert len(token) == 64

        service.complete_password_reset(token, 'new-password', 'new-password')

        assert service.login('grace@example.com', 'new-password')['user']['email'] == 'grace@example.com'
        assert self._token(engine) is None

    def test_passwords_must_match(self, service):
        with pytest.raises(ValueError, match='Passwords must match.'):
            service.complete_password_reset('token', 'new-password', 'other-password')

    def test_invalid_token(self, service):
        with pytest.raises(ValueError, match='invalid or expired'):
            service.complete_password_reset('missing', 'new-password', 'new-password')

    def test_expired_token(self, service, engine):
        _register(service)
        service.request_password_reset('grace@example.com')
        token = self._token(engine)
        with store.session_scope(engine) as session:
            store.get_user_by_email(session, 'grace@example.com').reset_token_expiry = (
                datetime.utcnow() - timedelta(minutes=1)
            )

        with pytest.raises(ValueError, match='invalid or expired'):
            service.complete_password_reset(token, 'new-password', 'new-password')
