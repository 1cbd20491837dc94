"""
Unit tests for routing.
"""

import pytest

from scratchhttp.http.request import HTTPRequest
from scratchhttp.http.response import HTTPResponse, ok
from scratchhttp.http.router import Router, RouteKind, RouteMatch, resolve_route
from scratchhttp.http.status_codes import HTTPStatus


class TestResolveRoute:
    """Tests for the pure resolve_route function."""

    @pytest.mark.parametrize("method, path, expected", [
        ("GET", "/", RouteMatch(RouteKind.ROOT)),
        ("GET", "/echo/hello", RouteMatch(RouteKind.ECHO, "hello")),
        ("GET", "/echo/", RouteMatch(RouteKind.ECHO, "")),
        ("GET", "/echo/a/b", RouteMatch(RouteKind.ECHO, "a/b")),
        ("GET", "/user-agent", RouteMatch(RouteKind.USER_AGENT)),
        ("GET", "/files/foo.txt", RouteMatch(RouteKind.FILE_GET, "foo.txt")),
        ("GET", "/files/", RouteMatch(RouteKind.FILE_GET, "")),
        ("POST", "/files/foo.txt", RouteMatch(RouteKind.FILE_POST, "foo.txt")),
        ("POST", "/files/", RouteMatch(RouteKind.FILE_POST, "")),
        ("GET", "/nonexistent", RouteMatch(RouteKind.NOT_FOUND)),
    ])
    def test_routes(self, method, path, expected):
        assert resolve_route(method, path) == expected

    def test_post_on_files_checked_before_get(self):
        """Test POST takes the upload branch, not the generic file branch."""
        assert resolve_route("POST", "/files/x").kind == RouteKind.FILE_POST
        assert resolve_route("GET", "/files/x").kind == RouteKind.FILE_GET

    @pytest.mark.parametrize("method", ["PUT", "DELETE", "HEAD", "post", "FOO"])
    def test_non_post_methods_read_files(self, method):
        """Test only an exact POST uploads."""
        assert resolve_route(method, "/files/x").kind == RouteKind.FILE_GET

    @pytest.mark.parametrize("method", ["GET", "POST", "DELETE"])
    def test_method_ignored_outside_files(self, method):
        assert resolve_route(method, "/echo/x") == RouteMatch(RouteKind.ECHO, "x")
        assert resolve_route(method, "/user-agent").kind == RouteKind.USER_AGENT
        assert resolve_route(method, "/").kind == RouteKind.ROOT

    @pytest.mark.parametrize("path", [
        "/echo",          # No trailing slash
        "/files",         # No trailing slash
        "/user-agent/",   # Exact match only
        "/user-agentx",
        "//",
        "/ECHO/x",        # Case-sensitive
        "/index.html",
    ])
    def test_near_misses_are_not_found(self, path):
        assert resolve_route("GET", path).kind == RouteKind.NOT_FOUND

    def test_prefix_remainder_verbatim(self):
        """Test no decoding or normalisation of the remainder."""
        assert resolve_route("GET", "/echo/a%20b").param == "a%20b"
        assert resolve_route("GET", "/files/../etc/passwd").param == "../etc/passwd"

    def test_total_and_deterministic(self):
        """Test every pair maps to exactly one kind, the same one every time."""
        methods = ["GET", "POST", "PUT", "", "X"]
        paths = ["/", "", "/echo/", "/files/", "/user-agent", "/a", "/files/a/b", "/echo//"]

        for method in methods:
            for path in paths:
                first = resolve_route(method, path)
                assert isinstance(first.kind, RouteKind)
                assert resolve_route(method, path) == first

    def test_route_match_is_frozen(self):
        match = RouteMatch(RouteKind.ECHO, "x")
        with pytest.raises(AttributeError):
            match.param = "y"


def _table():
    """A full handler table whose handlers report their kind in a header."""
    def make(kind):
        def handler(request: HTTPRequest, match: RouteMatch) -> HTTPResponse:
            return HTTPResponse(
                status=HTTPStatus.OK,
                headers=[("X-Kind", kind.value), ("X-Param", match.param)],
            )
        return handler

    return {kind: make(kind) for kind in RouteKind}


class TestRouter:
    """Tests for Router dispatch."""

    def test_dispatch_calls_matching_handler(self):
        router = Router(_table())
        response = router.dispatch(HTTPRequest(method="GET", path="/echo/hi"))

        assert response.get_header("X-Kind") == "echo"
        assert response.get_header("X-Param") == "hi"

    def test_dispatch_not_found(self):
        router = Router(_table())
        response = router.dispatch(HTTPRequest(method="GET", path="/nope"))

        assert response.get_header("X-Kind") == "not_found"

    def test_resolve(self):
        router = Router(_table())
        match = router.resolve(HTTPRequest(method="POST", path="/files/a"))

        assert match == RouteMatch(RouteKind.FILE_POST, "a")

    def test_missing_handler_rejected(self):
        """Test that an incomplete table is a construction error."""
        table = _table()
        del table[RouteKind.USER_AGENT]

        with pytest.raises(ValueError, match="user_agent"):
            Router(table)

    def test_handler_exceptions_propagate(self):
        """Test dispatch does not swallow handler errors."""
        def broken(request, match):
            raise RuntimeError("boom")

        table = _table()
        table[RouteKind.ROOT] = broken
        router = Router(table)

        with pytest.raises(RuntimeError):
            router.dispatch(HTTPRequest(method="GET", path="/"))

    def test_table_is_copied(self):
        table = _table()
        router = Router(table)
        table[RouteKind.ROOT] = lambda request, match: ok()

        response = router.dispatch(HTTPRequest(method="GET", path="/"))
        assert response.get_header("X-Kind") == "root"
