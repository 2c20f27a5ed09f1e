"""
Natours Backend: Error Classification Tests
=============================================

What we test:
    ✅ AppError subclasses are operational with their own status and message
    ✅ Known third-party failures map to client-safe operational errors
    ✅ Anything else is a Defect (500, generic message)
"""

import time
import uuid

import pytest
from fastapi.exceptions import RequestValidationError
from jose import jwt
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from natours.errors import Defect, Operational, classify
from natours.exceptions import NotFoundError, RateLimitExceededError, ValidationError
from natours.schemas.tour import TourCreate


class TestOperationalErrors:

    def test_app_error_passes_through(self):
        exc = NotFoundError(resource="tour", resource_id="123")
        result = classify(exc)
        assert result == Operational(404, "No tour found with that ID", exc)
        assert result.status == "fail"

    def test_rate_limit(self):
        result = classify(RateLimitExceededError())
        assert result.status_code == 429
        assert result.message == "Too many requests from this IP, try after 1 hour"

    def test_foreign_operational_object(self):
        class Flagged(Exception):
            is_operational = True
            status_code = 503
            message = "Tour provider unavailable"

        result = classify(Flagged())
        assert isinstance(result, Operational)
        assert result.status_code == 503
        assert result.status == "error"

    def test_validation_error_defaults(self):
        result = classify(ValidationError(message="Bad sort"))
        assert (result.status_code, result.message) == (400, "Bad sort")


class TestRecognizedFailures:

    def test_malformed_path_identifier(self):
        exc = RequestValidationError(
            [
                {
                    "type": "uuid_parsing",
                    "loc": ("path", "tour_id"),
                    "msg": "Input should be a valid UUID",
                    "input": "not-a-uuid",
                }
            ]
        )
        result = classify(exc)
        assert result == Operational(400, "Invalid tour_id: not-a-uuid.", exc)

    def test_postgres_duplicate_key(self):
        orig = Exception(
            'duplicate key value violates unique constraint "tours_name_key"\n'
            "DETAIL:  Key (name)=(The Forest Hiker) already exists."
        )
        exc = IntegrityError("INSERT INTO tours ...", {}, orig)
        result = classify(exc)
        assert result.status_code == 400
        assert result.message == "Duplicate field value: The Forest Hiker. Please use another value!"

    def test_sqlite_unique_constraint(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
        assert classify(exc).message == "Duplicate email value. Please use another value!"

    def test_foreign_key_violation(self):
        exc = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        result = classify(exc)
        assert result.status_code == 400
        assert result.message == "Invalid input data. Referenced record does not exist."

    def test_body_validation_lists_every_field(self):
        with pytest.raises(Exception) as exc_info:
            TourCreate.model_validate(
                {"name": "short", "duration": 5, "maxGroupSize": 10, "difficulty": "extreme", "price": 10}
            )
        result = classify(exc_info.value)
        assert result.status_code == 400
        assert result.message.startswith("Invalid input data. ")
        assert "name:" in result.message
        assert "difficulty:" in result.message

    def test_data_error(self):
        exc = DataError("INSERT", {}, Exception("value too long for type character varying(40)"))
        assert classify(exc) == Operational(400, "Invalid input data.", exc)

    def test_invalid_token(self):
        with pytest.raises(Exception) as exc_info:
            jwt.decode("not.a.token", "secret", algorithms=["HS256"])
        result = classify(exc_info.value)
        assert result.status_code == 401
        assert result.message == "Invalid token. Please log in again!"

    def test_expired_token(self):
        token = jwt.encode(
            {"id": str(uuid.uuid4()), "exp": int(time.time()) - 60}, "secret", algorithm="HS256"
        )
        with pytest.raises(Exception) as exc_info:
            jwt.decode(token, "secret", algorithms=["HS256"])
        result = classify(exc_info.value)
        assert result.status_code == 401
        assert result.message == "Your token has expired! Please log in again."

    def test_http_exception(self):
        exc = StarletteHTTPException(status_code=405, detail="Method Not Allowed")
        assert classify(exc) == Operational(405, "Method Not Allowed", exc)


class TestDefects:

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("unexpected"),
            KeyError("price"),
            OperationalError("SELECT 1", {}, Exception("connection refused")),
            IntegrityError("INSERT", {}, Exception("CHECK constraint failed: price")),
        ],
    )
    def test_unrecognized_errors_are_defects(self, exc):
        result = classify(exc)
        assert isinstance(result, Defect)
        assert result.status_code == 500
        assert result.message == "Something went wrong!"
        assert result.status == "error"
