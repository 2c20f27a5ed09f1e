"""
Natours Backend: Operational Exception Hierarchy
==================================================

What:  Application-specific exceptions for expected, classified failures.
How:   Each exception carries a client-safe message, an HTTP status code and
       an optional context dict. Every layer raises these; only the error
       normalization layer (natours.errors) turns them into responses.
Who:   Raised by guards, the not-found sentinel, services and route handlers.

Exception Hierarchy:
    AppError (base, is_operational = True)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── PayloadTooLargeError     → 413 Payload Too Large
    └── RateLimitExceededError   → 429 Too Many Requests

Anything that is not an AppError is a defect unless natours.errors.classify
recognizes it (driver errors, token errors, request validation errors).
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """
    Base exception for every operational Natours error.

    Attributes:
        message:      Client-facing description (always safe to return)
        status_code:  HTTP status code for the response
        context:      Additional debug info (logged, never returned in production)
    """

    is_operational = True

    def __init__(
        self,
        message: str = "Something went wrong!",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """'fail' for client errors (4xx), 'error' for everything else."""
        return "fail" if str(self.status_code).startswith("4") else "error"


class ValidationError(AppError):
    """
    Raised when client input cannot be accepted.

    When:    Malformed JSON body, bad identifier, failed field validation,
             duplicate unique value.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Invalid input data.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, status_code=400, context=ctx)
        self.field = field


class NotFoundError(AppError):
    """
    Raised when a path or a resource does not exist.

    The not-found sentinel passes a full message naming the unmatched path;
    services pass the resource name and identifier instead.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        message: Optional[str] = None,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if message is None:
            message = f"No {resource} found with that ID"
            ctx["resource"] = resource
            if resource_id:
                ctx["resource_id"] = resource_id
        super().__init__(message=message, status_code=404, context=ctx)


class PayloadTooLargeError(AppError):
    """
    Raised by the body parser when a body exceeds the byte ceiling.

    HTTP:    413 Payload Too Large
    """

    def __init__(
        self,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        kb = limit / 1024
        size = f"{kb:g}kb" if kb >= 1 else f"{limit} bytes"
        ctx = context or {}
        ctx["limit"] = limit
        super().__init__(
            message=f"Request body is larger than the {size} limit.",
            status_code=413,
            context=ctx,
        )
        self.limit = limit


class RateLimitExceededError(AppError):
    """
    Raised when a client exceeds the per-IP fixed-window limit.

    HTTP:    429 Too Many Requests
    Response also carries a Retry-After header (seconds until window reset).
    """

    def __init__(
        self,
        retry_after: int = 3600,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(
            message="Too many requests from this IP, try after 1 hour",
            status_code=429,
            context=ctx,
        )
        self.retry_after = retry_after
