"""Integration tests for the FastAPI exception handlers."""

import httpx
import pytest
from fastapi import FastAPI

from chat_engine.core.exceptions import (
    AppError,
    ConflictError,
    FeatureDisabledError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    register_exception_handlers,
)
from tests.utils.helpers import assert_error_response


@pytest.fixture
def app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Thread not found", resource="thread")

    @app.get("/invalid")
    async def invalid():
        raise ValidationError("Text messages require content", field="content")

    @app.get("/forbidden")
    async def forbidden():
        raise ForbiddenError("Not allowed", ability="send_message")

    @app.get("/disabled")
    async def disabled():
        raise FeatureDisabledError("Read tracking is disabled.", feature="reads")

    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestExceptionHandlers:
    async def test_not_found(self, client):
        response = await client.get("/missing")
        error = assert_error_response(response, 404, "NOT_FOUND")
        assert error["details"] == {"resource": "thread"}

    async def test_validation(self, client):
        response = await client.get("/invalid")
        error = assert_error_response(response, 400, "VALIDATION_ERROR")
        assert error["message"] == "Text messages require content"
        assert error["details"] == {"field": "content"}

    async def test_forbidden(self, client):
        response = await client.get("/forbidden")
        assert_error_response(response, 403, "FORBIDDEN")

    async def test_feature_disabled(self, client):
        response = await client.get("/disabled")
        error = assert_error_response(response, 409, "FEATURE_DISABLED")
        assert error["details"] == {"resource": "reads"}


class TestHierarchy:
    def test_all_errors_are_app_errors(self):
        for error in (
            NotFoundError(),
            ValidationError(),
            ConflictError(),
            FeatureDisabledError(),
            ForbiddenError(),
        ):
            assert isinstance(error, AppError)

    def test_feature_disabled_is_a_conflict(self):
        error = FeatureDisabledError(feature="deliveries")
        assert isinstance(error, ConflictError)
        assert error.status_code == 409

    def test_empty_details(self):
        assert ValidationError("bad").details == {}
