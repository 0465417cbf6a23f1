from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config.settings import get_config
from src.utils.exceptions import (
    TaskAutomationException,
    InvalidInputException,
    ParsingException,
    JiraAuthenticationException,
    JiraPermissionException,
    JiraIssueNotFoundException,
    ClientException,
    ConfigurationException
)
from src.utils.logger import get_logger, log_error_with_code

logger = get_logger(__name__)


def format_validation_errors(exc: RequestValidationError) -> dict:
    """
    Convert Pydantic validation errors to user-friendly format

    Args:
        exc: RequestValidationError from FastAPI/Pydantic

    Returns:
        Dictionary with custom error messages
    """
    errors = []

    for error in exc.errors():
        field = error['loc'][-1] if error['loc'] else 'unknown'
        error_type = error['type']
        ctx = error.get('ctx', {})

        # Map error types to user-friendly messages
        message_map = {
            'string_too_short': f"{field} must be at least {ctx.get('min_length', 1)} characters",
            'string_too_long': f"{field} must not exceed {ctx.get('max_length')} characters",
            'missing': f"{field} is required",
            'greater_than_equal': f"{field} must be at least {ctx.get('ge')}",
            'less_than_equal': f"{field} must not exceed {ctx.get('le')}",
            'too_short': f"{field} must contain at least {ctx.get('min_length')} items",
            'too_long': f"{field} must contain at most {ctx.get('max_length')} items",
            'int_parsing': f"{field} must be an integer",
            'bool_parsing': f"{field} must be true or false",
            'value_error': error.get('msg', f"Invalid value for {field}"),
        }

        message = message_map.get(error_type, error.get('msg', f"Invalid {field}"))

        # Custom @field_validator errors carry "Value error, <msg>"
        if error_type == 'value_error':
            message = message.replace('Value error, ', '', 1)

        errors.append({
            'field': field,
            'message': message,
            'type': error_type
        })

    return {
        'status': 'error',
        'code': 'VALIDATION_ERROR',
        'message': 'Request validation failed',
        'details': errors
    }


def status_code_for(exc: TaskAutomationException) -> int:
    """Map domain exception to HTTP status code"""
    if isinstance(exc, (InvalidInputException, ParsingException)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, JiraAuthenticationException):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, JiraPermissionException):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, JiraIssueNotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ClientException):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, ConfigurationException):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return HTTP 400 (instead of 422) for request validation errors"""
    logger.warning(f"Validation failed for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_validation_errors(exc)
    )


async def task_automation_exception_handler(request: Request, exc: TaskAutomationException):
    """Convert domain exceptions into the error envelope"""
    status_code = status_code_for(exc)

    if status_code >= 500:
        log_error_with_code(
            logger,
            exc.error_code or 'ERR_UNKNOWN',
            f"{request.method} {request.url.path} failed: {exc.message}",
            exception=exc
        )
    else:
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")

    content = {
        'success': False,
        'error': exc.message,
        'code': exc.error_code
    }
    if isinstance(exc, InvalidInputException) and exc.field:
        content['field'] = exc.field

    return JSONResponse(status_code=status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort handler; hides internals outside development"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)

    message = str(exc) if get_config().server.is_development else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'success': False, 'error': message}
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """JSON body for unknown routes and explicit HTTPExceptions"""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == 'Not Found':
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                'success': False,
                'error': 'Endpoint not found',
                'path': request.url.path,
                'method': request.method
            }
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'error': exc.detail},
        headers=getattr(exc, 'headers', None)
    )


def add_exception_handlers(app: FastAPI):
    """
    Register all error handlers on a FastAPI app

    Usage:
        app = FastAPI()
        add_exception_handlers(app)
    """
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(TaskAutomationException, task_automation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
