"""Tests for nova.compiler.router — declaration-order route table."""

import pytest

from nova.capabilities import CapabilityDictionary
from nova.compiler.parser import compile_route
from nova.compiler.route import CompiledRoute
from nova.compiler.router import Router
from nova.errors import NotFound

CAPS = CapabilityDictionary.default()


def _route(route_id: str, head: str) -> CompiledRoute:
    return compile_route(route_id, f'{head} :: kv.scan("j:")', capabilities=CAPS)


def _router(*routes: CompiledRoute) -> Router:
    r = Router()
    for route in routes:
        r.add(route)
    r.compile()
    return r


class TestRouterMatching:
    def test_static(self) -> None:
        r = _router(_route("R1", "GET /j -> [M1]"))
        match = r.match("GET", "/j")
        assert match.route.route_id == "R1"
        assert match.path_params == {}

    def test_path_variable(self) -> None:
        r = _router(_route("R1", "GET /j/{U1} -> M1"))
        assert r.match("GET", "/j/job7").path_params == {"U1": "job7"}

    def test_method_must_match(self) -> None:
        r = _router(_route("R1", "POST /j -> M1"))
        with pytest.raises(NotFound):
            r.match("GET", "/j")

    def test_method_is_case_insensitive_on_input(self) -> None:
        r = _router(_route("R1", "GET /j -> [M1]"))
        assert r.match("get", "/j").route.route_id == "R1"

    def test_no_match(self) -> None:
        r = _router(_route("R1", "GET /j -> [M1]"))
        with pytest.raises(NotFound, match="No route matches GET '/x'"):
            r.match("GET", "/x")

    def test_variable_does_not_cross_separator(self) -> None:
        r = _router(_route("R1", "GET /j/{U1} -> M1"))
        with pytest.raises(NotFound):
            r.match("GET", "/j/a/b")

    def test_first_declared_wins(self) -> None:
        r = _router(
            _route("R1", "GET /j/{U1} -> M1"),
            _route("R2", "GET /j/latest -> M1"),
        )
        assert r.match("GET", "/j/latest").route.route_id == "R1"

    def test_skips_other_methods_before_matching(self) -> None:
        r = _router(
            _route("R1", "POST /j/{U1} -> M1"),
            _route("R2", "GET /j/{U1} -> M1"),
        )
        assert r.match("GET", "/j/job1").route.route_id == "R2"


class TestRouterLifecycle:
    def test_add_after_compile_raises(self) -> None:
        r = _router()
        with pytest.raises(RuntimeError, match="after compilation"):
            r.add(_route("R1", "GET /j -> [M1]"))

    def test_routes_in_declaration_order(self) -> None:
        r = _router(_route("R2", "GET /b -> M1"), _route("R1", "GET /a -> M1"))
        assert [route.route_id for route in r.routes] == ["R2", "R1"]
        assert len(r) == 2
