"""Error types and the JSON envelope every failed request is rendered with."""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_MESSAGE = 'Database unavailable. Please try again later.'

_CODES_BY_STATUS = {
    400: 'invalid_input',
    401: 'unauthorized',
    403: 'forbidden',
    404: 'not_found',
    405: 'method_not_allowed',
    409: 'conflict',
    503: 'internal',
}

# Validation failures whose message alone does not say which field was wrong.
_LOCATED_ERROR_TYPES = {
    'missing',
    'date_from_datetime_parsing',
    'date_parsing',
    'date_type',
    'int_parsing',
    'greater_than_equal',
    'less_than_equal',
}


class FlexifyError(HTTPException):
    """Base for request failures the caller can correct and resubmit."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid_input'

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class InvalidInputError(FlexifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid_input'


class NotFoundError(FlexifyError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'


class ConflictError(FlexifyError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'


class InvalidStateError(FlexifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid_state'


class TooLateError(FlexifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'too_late'


class ServiceUnavailableError(FlexifyError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'internal'


def database_unavailable(action: str) -> ServiceUnavailableError:
    """Log the active storage exception and build the generic 503 for it.

    Must be called from inside an ``except`` block.
    """
    logger.exception('Database error while %s', action)
    return ServiceUnavailableError(DATABASE_UNAVAILABLE_MESSAGE)


def error_body(message: str, code: str) -> dict:
    return {'success': False, 'message': message, 'code': code, 'data': None}


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request.'

    first = errors[0]
    message = str(first.get('msg', 'Invalid request.'))
    # pydantic prefixes messages raised from validators
    message = message.removeprefix('Value error, ')
    location = [str(part) for part in first.get('loc', ()) if part not in ('body', 'query', 'path')]
    if location and first.get('type') in _LOCATED_ERROR_TYPES:
        return f"{'.'.join(location)}: {message}"
    return message


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = getattr(exc, 'code', None) or _CODES_BY_STATUS.get(exc.status_code, 'error')
        message = exc.detail if isinstance(exc.detail, str) else 'Request failed.'
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == 'Not Found':
            message = f'Route {request.url.path} not found'
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, code),
            headers=getattr(exc, 'headers', None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(_first_validation_message(exc), 'invalid_input'),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception('Database error while handling %s %s', request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_body(DATABASE_UNAVAILABLE_MESSAGE, 'internal'),
        )
