"""Tests for kiri.context."""

from conftest import make_ctx
from kiri.http.response import JSONBody, RawBody


class TestContext:
    def test_paths_start_equal(self) -> None:
        ctx = make_ctx("/api/counter")
        assert ctx.path == "/api/counter"
        assert ctx.original_path == "/api/counter"

    def test_set_path_leaves_original(self) -> None:
        ctx = make_ctx("/api/counter")
        ctx.set_path("/counter")
        assert ctx.path == "/counter"
        assert ctx.original_path == "/api/counter"

    def test_flags(self) -> None:
        ctx = make_ctx()
        assert not ctx.is_marked("seen")
        ctx.mark("seen")
        assert ctx.is_marked("seen")

    def test_state_is_per_context(self) -> None:
        a, b = make_ctx(), make_ctx()
        a.state["user"] = "x"
        assert b.state == {}


class TestResponseDraft:
    def test_default_response(self) -> None:
        response = make_ctx().to_response()
        assert response.status == 200
        assert response.body_bytes == b""

    def test_json_sets_tagged_body(self) -> None:
        ctx = make_ctx()
        ctx.json({"counter": 1}, status=201)
        assert isinstance(ctx.response.body, JSONBody)
        response = ctx.to_response()
        assert response.status == 201
        assert response.json_body() == {"counter": 1}

    def test_text_sets_raw_body(self) -> None:
        ctx = make_ctx()
        ctx.text("hi")
        assert isinstance(ctx.response.body, RawBody)
        assert ctx.to_response().text_body == "hi"

    def test_headers_carried(self) -> None:
        ctx = make_ctx()
        ctx.response.headers["X-Test"] = "1"
        assert ctx.to_response().header("x-test") == "1"
