"""
Natours Backend: Error Classification
=======================================

What:  Turns any exception into exactly one of two variants:
         Operational(status_code, message, original): expected, safe to show
         Defect(original):                            a bug, never described
How:   Errors that already carry ``is_operational = True`` (AppError) are used
       as-is. Known third-party failures are pattern-matched by the matcher
       functions below, in order. Everything else is a Defect.

Recognized failures:
    path parameter that fails to parse  → 400 "Invalid {param}: {value}."
    unique constraint violation          → 400 "Duplicate field value: ..."
    foreign key violation                → 400 "Invalid input data. ..."
    request/pydantic validation failure  → 400 "Invalid input data. ..."
    driver rejected a value (DataError)  → 400 "Invalid input data."
    expired JWT                          → 401
    invalid JWT                          → 401
    Starlette/FastAPI HTTPException      → its own status and detail
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from fastapi.exceptions import RequestValidationError
from jose import ExpiredSignatureError, JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import DataError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


@dataclass(frozen=True)
class Operational:
    """A classified, expected failure. ``message`` is client-safe."""

    status_code: int
    message: str
    original: BaseException

    @property
    def status(self) -> str:
        return "fail" if str(self.status_code).startswith("4") else "error"


@dataclass(frozen=True)
class Defect:
    """Anything unclassified. Only logged; clients see a generic message."""

    original: BaseException
    status_code: int = 500
    message: str = "Something went wrong!"

    @property
    def status(self) -> str:
        return "error"


Classified = Union[Operational, Defect]

Matcher = Callable[[BaseException], Optional[Operational]]


# ── Matchers ──────────────────────────────────────────────────────────────

# Postgres: 'Key (email)=(jonas@example.io) already exists.'
_PG_DUPLICATE_KEY = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>.*?)\) already exists")
# SQLite: 'UNIQUE constraint failed: users.email'
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(?P<field>\w+)")


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "input"


def match_malformed_identifier(exc: BaseException) -> Optional[Operational]:
    if not isinstance(exc, RequestValidationError):
        return None
    errors = exc.errors()
    if not errors or any(error.get("loc", ("",))[0] != "path" for error in errors):
        return None
    first = errors[0]
    name = _field_name(first["loc"])
    return Operational(400, f"Invalid {name}: {first.get('input')}.", exc)


def match_duplicate_field(exc: BaseException) -> Optional[Operational]:
    if not isinstance(exc, IntegrityError):
        return None
    detail = str(exc.orig)
    pg = _PG_DUPLICATE_KEY.search(detail)
    if pg:
        return Operational(
            400,
            f"Duplicate field value: {pg.group('value')}. Please use another value!",
            exc,
        )
    sqlite = _SQLITE_UNIQUE.search(detail)
    if sqlite:
        return Operational(
            400,
            f"Duplicate {sqlite.group('field')} value. Please use another value!",
            exc,
        )
    if "foreign key" in detail.lower():
        return Operational(400, "Invalid input data. Referenced record does not exist.", exc)
    return None


def match_failed_validation(exc: BaseException) -> Optional[Operational]:
    if not isinstance(exc, (RequestValidationError, PydanticValidationError)):
        return None
    messages = [
        f"{_field_name(error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
        for error in exc.errors()
    ]
    return Operational(400, "Invalid input data. " + ". ".join(messages), exc)


def match_data_error(exc: BaseException) -> Optional[Operational]:
    if isinstance(exc, DataError):
        return Operational(400, "Invalid input data.", exc)
    return None


def match_token_error(exc: BaseException) -> Optional[Operational]:
    if isinstance(exc, ExpiredSignatureError):
        return Operational(401, "Your token has expired! Please log in again.", exc)
    if isinstance(exc, JWTError):
        return Operational(401, "Invalid token. Please log in again!", exc)
    return None


def match_http_exception(exc: BaseException) -> Optional[Operational]:
    if isinstance(exc, StarletteHTTPException):
        return Operational(exc.status_code, str(exc.detail), exc)
    return None


MATCHERS: List[Matcher] = [
    match_malformed_identifier,
    match_duplicate_field,
    match_failed_validation,
    match_data_error,
    match_token_error,
    match_http_exception,
]


def classify(exc: BaseException) -> Classified:
    """Map any exception to Operational or Defect."""
    if getattr(exc, "is_operational", False) is True:
        return Operational(
            getattr(exc, "status_code", 500), getattr(exc, "message", str(exc)), exc
        )
    for matcher in MATCHERS:
        result = matcher(exc)
        if result is not None:
            return result
    return Defect(exc)
