"""FastAPI exception handlers for converting PaymentAppError to HTTP responses.

Every PaymentAppError carries its kind, and the kind decides the status:
- 400 Bad Request: validation failures and unsupported input
- 404 Not Found: unknown configuration entries
- 500 Internal Server Error: invariant violations
- 502 Bad Gateway: Stripe or the metadata store failed

Usage:
    from stripe_app.api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from stripe_app.models.errors import ErrorKind, PaymentAppError
from stripe_app.utils.logging import get_logger

logger = get_logger(__name__)


async def payment_app_error_handler(request: Request, exc: PaymentAppError) -> JSONResponse:
    """Handle PaymentAppError exceptions and convert to JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The PaymentAppError exception

    Returns:
        JSONResponse with the ErrorPayload body and the kind's status code.
    """
    if exc.is_internal:
        logger.error("Internal error on %s: %s", request.url.path, exc.message)
    else:
        logger.info("Request to %s failed with %s", request.url.path, exc.code.value)

    payload = exc.to_payload()
    return JSONResponse(
        status_code=payload.http_status,
        content=payload.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    The exception is logged with its traceback; the client only sees a
    generic message.
    """
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "kind": ErrorKind.INTERNAL_INVARIANT.value,
        "message": "An unexpected error occurred",
        "http_status": HTTP_500_INTERNAL_SERVER_ERROR,
        "rpc_code": "INTERNAL_SERVER_ERROR",
        "field_name": None,
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PaymentAppError, payment_app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
