import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.deps import get_auth_service, get_optional_user
from api.errors import from_domain_error, ok
from config.settings import SETTINGS
from core.auth import AuthService, LoginRequest, RegisterRequest, ResetCompleteRequest, ResetRequest
from core.errors import AuthError, ConflictError

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/auth', tags=['auth'])

ONBOARDING_REDIRECT = '/onboarding/select-brand'


def _set_session_cookie(response: JSONResponse, token: str):
    response.set_cookie(
        SETTINGS.get('auth_cookie_name', 'brain_session'),
        token,
        max_age=SETTINGS.get('auth_token_ttl_days', 7) * 24 * 60 * 60,
        httponly=True,
        secure=bool(SETTINGS.get('cookie_secure')),
        samesite='lax',
        path='/',
    )


@router.post('/register')
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.register(body.firstName, body.lastName, body.email, body.phone, body.password)
    except ConflictError as e:
        raise from_domain_error(e)

    response = ok({'redirectTo': ONBOARDING_REDIRECT, 'user': result['user']}, status_code=201)
    _set_session_cookie(response, result['token'])
    return response


@router.post('/login')
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.login(body.email, body.password)
    except AuthError as e:
        raise from_domain_error(e)

    response = ok({'user': result['user']})
    _set_session_cookie(response, result['token'])
    return response


@router.get('/me')
def me(user=Depends(get_optional_user)):
    return ok({'user': user.to_dict() if user else None})


@router.post('/logout')
def logout():
    response = ok()
    response.delete_cookie(SETTINGS.get('auth_cookie_name', 'brain_session'), path='/')
    return response


@router.post('/reset')
def request_reset(body: ResetRequest, auth: AuthService = Depends(get_auth_service)):
    auth.request_password_reset(body.email)
    return ok()


@router.post('/reset/complete')
def complete_reset(body: ResetCompleteRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        auth.complete_password_reset(body.token, body.password, body.confirmPassword)
    except ValueError as e:
        raise from_domain_error(e)
    return ok()
