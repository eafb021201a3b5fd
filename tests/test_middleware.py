"""Tests for the built-in middleware: auth, CORS, errors, request logging."""

import logging

import pytest

from conftest import make_ctx, not_found, ok
from kiri.errors import HTTPError, NotFound, Unauthorized
from kiri.http.response import Response, StreamingResponse
from kiri.middleware import (
    CORSConfig,
    CORSMiddleware,
    cors_middleware,
    create_auth_middleware,
    error_handler_middleware,
    logging_middleware,
)
from kiri.realtime.events import event_stream


class TestAuth:
    async def test_correct_token_passes(self) -> None:
        auth = create_auth_middleware("secret123")
        ctx = make_ctx(headers={"Authorization": "Bearer secret123"})
        response = await auth(ctx, ok)
        assert response.text_body == "ok"

    @pytest.mark.parametrize(
        "header",
        [None, "Bearer wrong", "bearer secret123", "Bearer  secret123", "secret123"],
    )
    async def test_rejects_without_calling_next(self, header: str | None) -> None:
        called = False

        async def downstream() -> Response:
            nonlocal called
            called = True
            return Response.text("ok")

        headers = {"Authorization": header} if header is not None else None
        response = await create_auth_middleware("secret123")(make_ctx(headers=headers), downstream)
        assert response.status == 401
        assert response.text_body == "Unauthorized"
        assert response.header("WWW-Authenticate") == "Bearer"
        assert called is False


class TestCORS:
    async def test_preflight_short_circuits(self) -> None:
        response = await cors_middleware(make_ctx(method="OPTIONS"), not_found)
        assert response.status == 200
        assert response.header("Access-Control-Allow-Origin") == "*"
        assert response.header("Access-Control-Max-Age") == "86400"
        assert "OPTIONS" in response.header("Access-Control-Allow-Methods")

    async def test_headers_added_to_downstream_response(self) -> None:
        response = await cors_middleware(make_ctx(), ok)
        assert response.text_body == "ok"
        assert response.header("Access-Control-Allow-Origin") == "*"
        assert response.header("Access-Control-Allow-Headers") == "Content-Type, Authorization"

    async def test_existing_cors_headers_are_replaced(self) -> None:
        async def ticks():
            yield "tick"

        async def streamed() -> StreamingResponse:
            return event_stream(ticks())

        response = await cors_middleware(make_ctx(), streamed)
        allow_headers = [
            value for name, value in response.headers if name.lower() == "access-control-allow-headers"
        ]
        assert allow_headers == ["Content-Type, Authorization"]
        assert response.header("Cache-Control") == "no-cache"

    async def test_preflight_max_age_is_single(self) -> None:
        response = await cors_middleware(make_ctx(method="OPTIONS"), not_found)
        max_ages = [value for name, value in response.headers if name.lower() == "access-control-max-age"]
        assert max_ages == ["86400"]

    async def test_specific_origin_is_echoed(self) -> None:
        mw = CORSMiddleware(CORSConfig(allow_origins=("https://app.example",)))
        ctx = make_ctx(headers={"Origin": "https://app.example"})
        response = await mw(ctx, ok)
        assert response.header("Access-Control-Allow-Origin") == "https://app.example"
        assert response.header("Vary") == "Origin"

    async def test_unknown_origin_gets_no_headers(self) -> None:
        mw = CORSMiddleware(CORSConfig(allow_origins=("https://app.example",)))
        ctx = make_ctx(headers={"Origin": "https://evil.example"})
        response = await mw(ctx, ok)
        assert response.header("Access-Control-Allow-Origin") is None


class TestErrorHandler:
    async def test_passes_through_success(self) -> None:
        response = await error_handler_middleware(make_ctx(), ok)
        assert response.text_body == "ok"

    async def test_unexpected_error_is_json_500(self, caplog: pytest.LogCaptureFixture) -> None:
        async def boom() -> Response:
            raise RuntimeError("store exploded")

        response = await error_handler_middleware(make_ctx("/api/x"), boom)
        assert response.status == 500
        assert response.json_body() == {
            "error": "Internal Server Error",
            "message": "store exploded",
        }
        assert "500 GET /api/x" in caplog.text

    async def test_message_falls_back_to_type_name(self) -> None:
        async def boom() -> Response:
            raise KeyError

        response = await error_handler_middleware(make_ctx(), boom)
        assert response.json_body()["message"] == "KeyError"

    async def test_http_error_keeps_status(self) -> None:
        async def missing() -> Response:
            raise NotFound()

        response = await error_handler_middleware(make_ctx(), missing)
        assert response.status == 404
        assert response.json_body() == {"error": "Not found"}

    async def test_http_error_headers(self) -> None:
        async def denied() -> Response:
            raise Unauthorized()

        response = await error_handler_middleware(make_ctx(), denied)
        assert response.status == 401
        assert response.header("WWW-Authenticate") == "Bearer"

    async def test_http_error_without_detail(self) -> None:
        async def teapot() -> Response:
            raise HTTPError(418)

        response = await error_handler_middleware(make_ctx(), teapot)
        assert response.json_body() == {"error": "Error 418"}


class TestLoggingMiddleware:
    async def test_logs_request_and_response(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="kiri.middleware"):
            await logging_middleware(make_ctx("/api/counter?x=1", method="POST"), ok)
        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "--> POST /api/counter?x=1"
        assert messages[1].startswith("<-- 200 POST /api/counter?x=1 - ")
        assert messages[1].endswith("ms")
