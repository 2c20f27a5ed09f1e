"""
Natours Backend: Error Normalization Layer
============================================

What:  The single place where errors become HTTP responses.
How:   classify() reduces the error to Operational or Defect; the response
       shape then depends on two axes:

                      API request (/api...)          page request
       development    {status, error, message,       error page, full message
                       stack}
       production     {status, message}, or          error page, message, or
                      generic message for defects    generic apology for defects

Who:   Called by FastAPI's exception handlers (errors raised in routes and
       dependencies) and by the guard pipeline (errors raised by guards, or
       escaping the routers). No other component formats an error.
"""

import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.templating import Jinja2Templates
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from natours.errors.classify import Classified, Defect, Operational, classify
from natours.exceptions import AppError, RateLimitExceededError

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
PAGE_TITLE = "Something went wrong!"
GENERIC_PAGE_MESSAGE = "Please try again later."


def describe_error(exc: BaseException, classified: Classified) -> Dict[str, Any]:
    """Development-only serialization of the original error."""
    described: Dict[str, Any] = {
        "name": type(exc).__name__,
        "detail": str(exc),
        "status": classified.status,
        "status_code": classified.status_code,
        "is_operational": isinstance(classified, Operational),
    }
    if isinstance(exc, AppError) and exc.context:
        described["context"] = exc.context
    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        described["errors"] = exc.errors()
    return jsonable_encoder(described, custom_encoder={BaseException: str})


def format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


class ErrorNormalizer:
    """
    Builds the one response sent for a failed request.

    Args:
        development: Full error detail when True; production-like otherwise
        templates:   View engine used for the error page
    """

    def __init__(self, development: bool, templates: Jinja2Templates):
        self.development = development
        self.templates = templates

    async def handle(self, request: Request, exc: Exception) -> Response:
        """Exception handler entry point: classify, log, format."""
        classified = classify(exc)
        self.log(request, classified)

        if request.url.path.startswith(API_PREFIX):
            response = self.api_response(classified)
        else:
            response = self.page_response(request, classified)

        if isinstance(exc, RateLimitExceededError):
            response.headers["Retry-After"] = str(exc.retry_after)
        elif isinstance(exc, StarletteHTTPException) and exc.headers:
            response.headers.update(exc.headers)
        return response

    # ── Logging ───────────────────────────────────────────────────────────

    def log(self, request: Request, classified: Classified) -> None:
        if isinstance(classified, Defect):
            logger.error(
                "Unexpected error on %s %s: %s",
                request.method,
                request.url.path,
                classified.original,
                exc_info=classified.original,
            )
        elif classified.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, classified.message
            )
        else:
            logger.warning(
                "%s %s → %d: %s",
                request.method,
                request.url.path,
                classified.status_code,
                classified.message,
            )

    # ── Formatting ────────────────────────────────────────────────────────

    def api_response(self, classified: Classified) -> JSONResponse:
        if self.development:
            original = classified.original
            message = (
                classified.message if isinstance(classified, Operational) else str(original)
            )
            content = {
                "status": classified.status,
                "error": describe_error(original, classified),
                "message": message,
                "stack": format_stack(original),
            }
        else:
            # Defect keeps its generic message; nothing of the original leaks.
            content = {"status": classified.status, "message": classified.message}
        return JSONResponse(status_code=classified.status_code, content=content)

    def page_response(self, request: Request, classified: Classified) -> Response:
        if isinstance(classified, Operational):
            message = classified.message
        elif self.development:
            message = str(classified.original)
        else:
            message = GENERIC_PAGE_MESSAGE
        return self.templates.TemplateResponse(
            request,
            "error.html",
            {"title": PAGE_TITLE, "msg": message},
            status_code=classified.status_code,
        )


HANDLED_EXCEPTIONS = (
    AppError,
    RequestValidationError,
    PydanticValidationError,
    StarletteHTTPException,
    SQLAlchemyError,
    JWTError,
)


def register_exception_handlers(app: FastAPI, normalizer: ErrorNormalizer) -> None:
    """
    Route FastAPI's exception handling into the normalizer.

    Types listed here are caught by FastAPI next to the routers. Anything else
    propagates out of the routers and is caught by the guard pipeline, which
    hands it to the same normalizer.
    """
    for exc_class in HANDLED_EXCEPTIONS:
        app.add_exception_handler(exc_class, normalizer.handle)
