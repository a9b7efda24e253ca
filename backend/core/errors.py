"""Error taxonomy and the single HTTP boundary that renders it."""

import logging
import traceback
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from backend.core.responses import error_body

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = 'validation'
    AUTHENTICATION = 'authentication'
    AUTHORIZATION = 'authorization'
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    DATABASE = 'database'
    EXTERNAL_SERVICE = 'external_service'
    UNEXPECTED = 'unexpected'

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.DATABASE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.EXTERNAL_SERVICE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AppError(Exception):
    """An expected failure tagged with the kind that decides its HTTP status."""

    def __init__(self, kind: ErrorKind, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors = errors

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.kind.value!r}, {self.message!r})'


class ValidationError(AppError):
    def __init__(self, message: str = 'Validation failed', errors: dict[str, str] | None = None):
        super().__init__(ErrorKind.VALIDATION, message, errors)


class AuthenticationError(AppError):
    def __init__(self, message: str = 'Authentication failed'):
        super().__init__(ErrorKind.AUTHENTICATION, message)


class AuthorizationError(AppError):
    def __init__(self, message: str = 'You do not have permission to perform this action'):
        super().__init__(ErrorKind.AUTHORIZATION, message)


class NotFoundError(AppError):
    def __init__(self, resource: str = 'Resource'):
        super().__init__(ErrorKind.NOT_FOUND, f'{resource} not found')


class ConflictError(AppError):
    def __init__(self, message: str = 'Resource already exists'):
        super().__init__(ErrorKind.CONFLICT, message)


class DatabaseError(AppError):
    def __init__(self, message: str = 'Database operation failed'):
        super().__init__(ErrorKind.DATABASE, message)


class ExternalServiceError(AppError):
    def __init__(self, service: str, message: str = 'External service error'):
        super().__init__(ErrorKind.EXTERNAL_SERVICE, f'{service}: {message}')
        self.service = service


def register_error_handlers(app: FastAPI, expose_details: bool) -> None:
    """Attach the handlers that turn every failure into the error envelope.

    ``expose_details`` controls whether unexpected errors leak their message
    and stack trace; it is off in production.
    """

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.kind in (ErrorKind.DATABASE, ErrorKind.EXTERNAL_SERVICE):
            logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
        else:
            logger.info('%s %s rejected (%s): %s', request.method, request.url.path, exc.kind.value, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.status_code, errors=exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = {
            '.'.join(str(part) for part in error['loc'] if part != 'body') or 'body': error['msg']
            for error in exc.errors()
        }
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body('Validation failed', status.HTTP_400_BAD_REQUEST, errors=errors),
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning('Constraint violation on %s %s: %s', request.method, request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body('A record with this information already exists', status.HTTP_409_CONFLICT),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception('Unhandled error on %s %s', request.method, request.url.path)
        code = ErrorKind.UNEXPECTED.status_code
        if not expose_details:
            return JSONResponse(status_code=code, content=error_body('An unexpected error occurred', code))
        body = error_body(str(exc) or exc.__class__.__name__, code)
        body['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=code, content=body)
