"""Tests for kiri.routing — exact-match dispatch and return-value negotiation."""

from conftest import make_ctx, not_found
from kiri.http.response import Response
from kiri.routing import Router


async def dispatch(router: Router, method: str, path: str) -> Response:
    ctx = make_ctx(path, method=method)
    return await router.routes()(ctx, not_found)


class TestRegistration:
    def test_methods_are_chainable(self) -> None:
        router = (
            Router()
            .get("/a", lambda ctx: "a")
            .post("/a", lambda ctx: "a")
            .put("/a", lambda ctx: "a")
            .delete("/a", lambda ctx: "a")
        )
        assert router.keys == ["GET:/a", "POST:/a", "PUT:/a", "DELETE:/a"]
        assert len(router) == 4

    def test_lookup_miss(self) -> None:
        assert Router().lookup("GET", "/nope") is None


class TestDispatch:
    async def test_hit_invokes_handler(self) -> None:
        router = Router().get("/x", lambda ctx: {"ok": True})
        response = await dispatch(router, "GET", "/x")
        assert response.status == 200
        assert response.json_body() == {"ok": True}

    async def test_method_mismatch_defers(self) -> None:
        router = Router().get("/x", lambda ctx: "x")
        response = await dispatch(router, "POST", "/x")
        assert response.status == 404

    async def test_unknown_path_defers(self) -> None:
        router = Router().get("/x", lambda ctx: "x")
        response = await dispatch(router, "GET", "/y")
        assert response.status == 404

    async def test_second_registration_wins(self) -> None:
        router = Router().get("/x", lambda ctx: "first").get("/x", lambda ctx: "second")
        response = await dispatch(router, "GET", "/x")
        assert response.text_body == "second"

    async def test_async_handler(self) -> None:
        async def handler(ctx):
            return Response.text("async", status=201)

        router = Router().post("/x", handler)
        response = await dispatch(router, "POST", "/x")
        assert response.status == 201
        assert response.text_body == "async"

    async def test_handler_using_context_draft(self) -> None:
        def handler(ctx):
            ctx.json({"counter": 3}, status=202)
            return ctx

        response = await dispatch(Router().get("/c", handler), "GET", "/c")
        assert response.status == 202
        assert response.json_body() == {"counter": 3}

    async def test_matches_narrowed_path(self) -> None:
        router = Router().get("/counter", lambda ctx: "hit")
        ctx = make_ctx("/api/counter")
        ctx.set_path("/counter")
        response = await router.routes()(ctx, not_found)
        assert response.text_body == "hit"
