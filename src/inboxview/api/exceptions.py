"""Exception handlers for the Inbox View API.

Every error leaves the API as ``{"error": ..., "kind": ..., "details": ...}``
so the dashboard can tell a bad address from a provider outage.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from inboxview.domain.exceptions import InboxViewError

_KIND_STATUS: dict[str, int] = {
    "InvalidAddress": status.HTTP_400_BAD_REQUEST,
    "InvalidFilter": status.HTTP_400_BAD_REQUEST,
    "MailNotFound": status.HTTP_404_NOT_FOUND,
    "MailboxNotFound": status.HTTP_404_NOT_FOUND,
    "SourceUnavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "NormalizationError": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def inbox_view_error_handler(request: Request, exc: InboxViewError) -> JSONResponse:
    """Map a domain error to its HTTP status."""
    status_code = _KIND_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind}): {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters are bad input, reported as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Request validation failed",
            "kind": "InvalidRequest",
            "details": {"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
            ]},
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "kind": "InternalError", "details": {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InboxViewError, inbox_view_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
