"""
Natours Backend: Error Normalizer Tests
=========================================

What we test:
    ✅ Production API: {status, message}; defects never leak details
    ✅ Development API: error, message and stack included
    ✅ Page requests render the error page with the right message
    ✅ Retry-After on rate limit responses
    ✅ Defects are logged with their traceback
"""

import json
import logging

import pytest
from starlette.requests import Request

from natours.errors import ErrorNormalizer
from natours.exceptions import NotFoundError, RateLimitExceededError
from natours.templating import templates


def make_request(path: str, method: str = "GET") -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [],
        "scheme": "http",
        "server": ("test", 80),
        "client": ("127.0.0.1", 1234),
    }
    return Request(scope)


def raised(exc: Exception) -> Exception:
    """Return ``exc`` with a real traceback attached."""
    try:
        raise exc
    except Exception as caught:
        return caught


@pytest.fixture
def production():
    return ErrorNormalizer(development=False, templates=templates)


@pytest.fixture
def development():
    return ErrorNormalizer(development=True, templates=templates)


class TestProductionApi:

    @pytest.mark.asyncio
    async def test_operational_error(self, production):
        response = await production.handle(
            make_request("/api/v1/tours/1"), NotFoundError(resource="tour")
        )
        assert response.status_code == 404
        assert json.loads(response.body) == {
            "status": "fail",
            "message": "No tour found with that ID",
        }

    @pytest.mark.asyncio
    async def test_defect_is_generic(self, production):
        response = await production.handle(
            make_request("/api/v1/tours"), raised(RuntimeError("db password is hunter2"))
        )
        body = json.loads(response.body)
        assert response.status_code == 500
        assert body == {"status": "error", "message": "Something went wrong!"}
        assert "hunter2" not in response.body.decode()

    @pytest.mark.asyncio
    async def test_rate_limit_sets_retry_after(self, production):
        response = await production.handle(
            make_request("/api/v1/tours"), RateLimitExceededError(retry_after=1200)
        )
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1200"


class TestDevelopmentApi:

    @pytest.mark.asyncio
    async def test_full_detail(self, development):
        response = await development.handle(
            make_request("/api/v1/tours/1"), raised(NotFoundError(resource="tour"))
        )
        body = json.loads(response.body)
        assert response.status_code == 404
        assert body["status"] == "fail"
        assert body["message"] == "No tour found with that ID"
        assert body["error"]["name"] == "NotFoundError"
        assert body["error"]["context"] == {"resource": "tour"}
        assert "Traceback" in body["stack"]

    @pytest.mark.asyncio
    async def test_defect_shows_original_message(self, development):
        response = await development.handle(
            make_request("/api/v1/tours"), raised(KeyError("price"))
        )
        body = json.loads(response.body)
        assert response.status_code == 500
        assert body["status"] == "error"
        assert body["message"] == "'price'"
        assert body["error"]["is_operational"] is False


class TestPages:

    @pytest.mark.asyncio
    async def test_operational_page(self, production):
        response = await production.handle(
            make_request("/tour/nowhere"),
            NotFoundError(message="There is no tour with that name."),
        )
        assert response.status_code == 404
        assert response.template.name == "error.html"
        assert response.context["title"] == "Something went wrong!"
        assert response.context["msg"] == "There is no tour with that name."

    @pytest.mark.asyncio
    async def test_production_defect_page_apologizes(self, production):
        response = await production.handle(make_request("/"), raised(ValueError("secret")))
        assert response.status_code == 500
        assert response.context["msg"] == "Please try again later."
        assert b"secret" not in response.body

    @pytest.mark.asyncio
    async def test_development_defect_page_shows_message(self, development):
        response = await development.handle(make_request("/"), raised(ValueError("broken view")))
        assert response.status_code == 500
        assert response.context["msg"] == "broken view"


@pytest.mark.asyncio
async def test_defect_logged_with_traceback(production, caplog):
    with caplog.at_level(logging.ERROR, logger="natours.errors.handler"):
        await production.handle(make_request("/api/v1/tours"), raised(RuntimeError("boom")))
    record = next(r for r in caplog.records if r.name == "natours.errors.handler")
    assert record.exc_info is not None
    assert "boom" in record.getMessage()


@pytest.mark.asyncio
async def test_operational_logged_as_warning(production, caplog):
    with caplog.at_level(logging.WARNING, logger="natours.errors.handler"):
        await production.handle(make_request("/api/v1/x"), NotFoundError(resource="tour"))
    assert any(r.levelno == logging.WARNING for r in caplog.records)
