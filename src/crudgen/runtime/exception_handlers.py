"""
Exception handlers for crudgen FastAPI applications.

The engine raises; this layer maps errors to status codes and JSON bodies:

- ValidationError (engine or pydantic): 400 with field details
- AuthenticationError: 401
- PermissionDeniedError: 403
- RecordNotFoundError: 404
- ConflictError / DuplicateRecordError: 409
- anything else: 500
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crudgen.runtime.logging import get_logger

logger = get_logger("http")


def error_body(error: str, message: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """
    Register the standard exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Include unexpected exception messages in 500 responses
    """
    import pydantic

    from crudgen.runtime.errors import (
        AuthenticationError,
        ConflictError,
        DuplicateRecordError,
        ModelNotConfiguredError,
        PermissionDeniedError,
        RecordNotFoundError,
        ValidationError,
    )
    from crudgen.runtime.validation import issues_from_pydantic

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Structural input violations -> 400 with field-level details."""
        return JSONResponse(
            status_code=400,
            content=error_body("Validation Error", str(exc), details=exc.details()),
        )

    @app.exception_handler(pydantic.ValidationError)
    async def pydantic_error_handler(
        request: Request, exc: pydantic.ValidationError
    ) -> JSONResponse:
        """Pydantic errors raised directly by hooks or custom handlers."""
        details = ValidationError(issues_from_pydantic(exc)).details()
        return JSONResponse(
            status_code=400,
            content=error_body("Validation Error", "Invalid input data", details=details),
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(status_code=401, content=error_body("Unauthorized", str(exc)))

    @app.exception_handler(PermissionDeniedError)
    async def permission_error_handler(
        request: Request, exc: PermissionDeniedError
    ) -> JSONResponse:
        return JSONResponse(status_code=403, content=error_body("Forbidden", str(exc)))

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=error_body("Not Found", "The requested record was not found"),
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        """Business-rule violations raised by hooks."""
        return JSONResponse(status_code=409, content=error_body("Conflict", str(exc)))

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content=error_body("Duplicate Entry", str(exc), fields=exc.fields or None),
        )

    @app.exception_handler(ModelNotConfiguredError)
    async def model_not_configured_handler(
        request: Request, exc: ModelNotConfiguredError
    ) -> JSONResponse:
        logger.error("Request for unconfigured model %s", exc.model_name)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal Server Error", str(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        message = str(exc) if debug and str(exc) else "An unexpected error occurred"
        # Runs outside the HTTP middleware, so the request id is set here
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal Server Error", message),
            headers={"X-Request-ID": request_id} if request_id else None,
        )
