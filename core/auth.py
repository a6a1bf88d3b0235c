"""
Account registration, login, session tokens and password resets.
"""

import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt
from pydantic import BaseModel, Field, field_validator

from config.settings import SETTINGS, get_secret
from core.errors import AuthError, ConflictError
from core.workspace_manager import WorkspaceManager
from data import store

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = r'^[\+]?[0-9\s\-\(\)]+$'
BCRYPT_ROUNDS = 12


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError('Please enter a valid email address.')
    return value


class RegisterRequest(BaseModel):
    firstName: str = Field(min_length=2, max_length=50)
    lastName: str = Field(min_length=2, max_length=50)
    email: str = Field(min_length=5, max_length=254)
    phone: str = Field(min_length=6, max_length=32, pattern=PHONE_PATTERN)
    password: str = Field(min_length=8, max_length=128)

    @field_validator('firstName', 'lastName')
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError('Name must be at least 2 characters.')
        return value

    @field_validator('email')
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)


class LoginRequest(BaseModel):
    email: str = Field(min_length=5, max_length=254)
    password: str = Field(min_length=8, max_length=128)

    @field_validator('email')
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)


class ResetRequest(BaseModel):
    email: str = Field(min_length=5, max_length=254)

    @field_validator('email')
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)


class ResetCompleteRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)
    confirmPassword: str = Field(min_length=8, max_length=128)


# ---------------------------------------------------------------------------
# Passwords and tokens
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def _jwt_secret() -> str:
    secret = get_secret('JWT_SECRET')
    if not secret:
        raise RuntimeError('JWT_SECRET is not configured')
    return secret


def sign_auth_token(payload: Dict[str, Any]) -> str:
    """Sign ``{userId, email}`` into a session token."""
    claims = dict(payload)
    claims['exp'] = datetime.utcnow() + timedelta(days=SETTINGS.get('auth_token_ttl_days', 7))
    return jwt.encode(claims, _jwt_secret(), algorithm=SETTINGS.get('jwt_algorithm', 'HS256'))


def verify_auth_token(token: str) -> Optional[Dict[str, Any]]:
    """Decoded claims, or None for an invalid or expired token."""
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[SETTINGS.get('jwt_algorithm', 'HS256')])
    except jwt.PyJWTError as e:
        logger.debug(f'[AUTH] Token rejected: {e}')
        return None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AuthService:
    def __init__(self, engine=None, workspaces: Optional[WorkspaceManager] = None):
        self.engine = engine or store.init_db()
        self.workspaces = workspaces or WorkspaceManager(self.engine)

    def register(self, first_name: str, last_name: str, email: str, phone: str, password: str) -> Dict[str, Any]:
        email = email.strip().lower()
        with store.session_scope(self.engine) as session:
            if store.get_user_by_email(session, email):
                raise ConflictError('An account with this email already exists.')

            user = store.create_user(
                session,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email,
                phone=phone.strip(),
                password_hash=hash_password(password),
                onboarding_status='not_started',
                onboarding_step=0,
            )
            self.workspaces.add_workspace(session, user, f"{first_name.strip()}'s Workspace",
                                          slug_base=email.split('@')[0])
            user_id = user.id
            user_data = user.to_dict()
        logger.info(f'[AUTH] Registered user {user_id}')
        return {'user': user_data, 'token': sign_auth_token({'userId': str(user_id), 'email': email})}

    def login(self, email: str, password: str) -> Dict[str, Any]:
        email = email.strip().lower()
        with store.session_scope(self.engine) as session:
            user = store.get_user_by_email(session, email)
            if user is None or not verify_password(password, user.password_hash):
                logger.info('[AUTH] Failed login attempt')
                raise AuthError('Incorrect email or password.')
            user_data = user.to_dict()
        return {'user': user_data, 'token': sign_auth_token({'userId': user_data['id'], 'email': email})}

    def get_user_from_token(self, token: Optional[str]):
        """User row for a valid token, else None."""
        if not token:
            return None
        claims = verify_auth_token(token)
        if not claims or 'userId' not in claims:
            return None
        try:
            user_id = int(claims['userId'])
        except (TypeError, ValueError):
            return None
        with store.session_scope(self.engine) as session:
            return store.get_user(session, user_id)

    def request_password_reset(self, email: str) -> bool:
        email = email.strip().lower()
        with store.session_scope(self.engine) as session:
            user = store.get_user_by_email(session, email)
            if user is None:
                return True
            user.reset_token = secrets.token_hex(32)
            user.reset_token_expiry = datetime.utcnow() + timedelta(
                minutes=SETTINGS.get('reset_token_ttl_minutes', 30))
            # No mailer; the link goes to the log
            logger.info(f'[AUTH] Password reset link: /reset-password?token={user.reset_token}')
        return True

    def complete_password_reset(self, token: str, password: str, confirm_password: str) -> bool:
        if password != confirm_password:
            raise ValueError('Passwords must match.')

        with store.session_scope(self.engine) as session:
            user = store.get_user_by_reset_token(session, token) if token else None
            if user is None or not user.reset_token_expiry or user.reset_token_expiry < datetime.utcnow():
                raise ValueError('Reset link is invalid or expired.')
            user.password_hash = hash_password(password)
            user.reset_token = None
            user.reset_token_expiry = None
            logger.info(f'[AUTH] Password reset completed for user {user.id}')
        return True
