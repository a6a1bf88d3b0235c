"""FastAPI dependencies: services bound to the app's engine, auth and workspace access."""

import logging
from typing import Optional

from fastapi import Depends, Request

from analysis.llm_client import ChatClient, get_client
from api.errors import ApiError, from_domain_error
from config.settings import SETTINGS
from core.auth import AuthService
from core.errors import ForbiddenError, NotFoundError
from core.onboarding_manager import OnboardingManager
from core.workspace_manager import WorkspaceManager

logger = logging.getLogger(__name__)


def get_engine(request: Request):
    return request.app.state.engine


def get_settings(request: Request) -> dict:
    return request.app.state.settings


def get_llm_client(request: Request) -> ChatClient:
    """Client stored on app state, created on first use."""
    state = request.app.state
    if getattr(state, 'llm_client', None) is None:
        state.llm_client = get_client()
    return state.llm_client


def get_auth_service(engine=Depends(get_engine)) -> AuthService:
    return AuthService(engine)


def get_workspace_manager(engine=Depends(get_engine)) -> WorkspaceManager:
    return WorkspaceManager(engine)


def get_onboarding_manager(request: Request, engine=Depends(get_engine)) -> OnboardingManager:
    return OnboardingManager(engine, client=get_llm_client(request), settings=get_settings(request))


def read_session_token(request: Request) -> Optional[str]:
    """Session cookie, or a Bearer token from the Authorization header."""
    cookie_name = SETTINGS.get('auth_cookie_name', 'brain_session')
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get('authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip() or None
    return None


def get_optional_user(request: Request, auth: AuthService = Depends(get_auth_service)):
    return auth.get_user_from_token(read_session_token(request))


def get_current_user(user=Depends(get_optional_user)):
    if user is None:
        raise ApiError(401, 'Unauthorized')
    return user


def get_workspace(
    slug: str,
    user=Depends(get_current_user),
    workspaces: WorkspaceManager = Depends(get_workspace_manager),
):
    """Workspace for the ``{slug}`` path parameter, owned by the current user."""
    try:
        return workspaces.get_workspace_for_user(user, slug)
    except (NotFoundError, ForbiddenError) as e:
        logger.info(f'[API] Workspace access denied for {slug}: {e}')
        raise from_domain_error(e)
