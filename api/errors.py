"""Response envelope and exception handlers for the REST API."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.errors import AuthError, ConflictError, ForbiddenError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """HTTP-level failure rendered as ``{success: false, error, ...}``."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None,
                 details: Any = None, **extra):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {'success': False, 'error': self.message}
        if self.code:
            body['code'] = self.code
        if self.details is not None:
            body['details'] = self.details
        body.update(self.extra)
        return body


_NO_DATA = object()


def ok(data: Any = _NO_DATA, status_code: int = 200, **extra) -> JSONResponse:
    body = {'success': True}
    if data is not _NO_DATA:
        body['data'] = data
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


def from_domain_error(error: Exception) -> ApiError:
    """Map service-layer exceptions onto HTTP statuses."""
    if isinstance(error, AuthError):
        return ApiError(401, str(error))
    if isinstance(error, ConflictError):
        return ApiError(409, str(error))
    if isinstance(error, ForbiddenError):
        return ApiError(403, str(error))
    if isinstance(error, LookupError):
        return ApiError(404, str(error))
    if isinstance(error, ValueError):
        return ApiError(400, str(error))
    return ApiError(500, 'Internal server error')


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request'
    first = errors[0]
    field = '.'.join(str(p) for p in first.get('loc', ()) if p != 'body')
    message = first.get('msg', 'Invalid request')
    # pydantic prefixes messages raised from validators
    message = message.removeprefix('Value error, ')
    return f'{field}: {message}' if field else message


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({'success': False, 'error': _first_validation_message(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception(f'[API] Unhandled error on {request.method} {request.url.path}')
        return JSONResponse({'success': False, 'error': 'Internal server error'}, status_code=500)
