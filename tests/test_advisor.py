"""Tests for nova.observability.advisor — pagination suggestions."""

from nova.capabilities import CapabilityDictionary
from nova.compiler.parser import compile_route
from nova.config import EngineConfig
from nova.observability.advisor import SuggestionKind, suggest_optimizations

CAPS = CapabilityDictionary.default()


def _routes(*specs: str):
    return [compile_route(f"R{i}", spec, capabilities=CAPS) for i, spec in enumerate(specs, 1)]


class TestSuggestOptimizations:
    def test_missing_page(self) -> None:
        (s,) = suggest_optimizations(_routes('GET /j -> [M1] :: kv.scan("j:") | !p99<500ms'))
        assert s.route == "/j"
        assert s.kind is SuggestionKind.ADD_PAGE
        assert s.message == "Add page(50) to limit results and improve latency."
        assert s.current is None
        assert s.proposed == 50

    def test_oversized_page(self) -> None:
        (s,) = suggest_optimizations(
            _routes('GET /j -> [M1] :: kv.scan("j:") | page(100) | !p99<500ms')
        )
        assert s.kind is SuggestionKind.REDUCE_PAGE
        assert s.message == "Reduce page size from 100 to 50 to meet latency budget."
        assert (s.current, s.proposed) == (100, 50)

    def test_page_at_or_under_max(self) -> None:
        routes = _routes(
            'GET /a -> [M1] :: kv.scan("j:") | page(10) | !p99<500ms',
            'GET /b -> [M1] :: kv.scan("j:") | page(50) | !p99<500ms',
        )
        assert suggest_optimizations(routes) == ()

    def test_unbudgeted_routes_ignored(self) -> None:
        assert suggest_optimizations(_routes('GET /j -> [M1] :: kv.scan("j:")')) == ()

    def test_route_order_preserved(self) -> None:
        routes = _routes(
            'GET /b -> [M1] :: kv.scan("j:") | page(80) | !p50<1s',
            'GET /a -> [M1] :: kv.scan("j:") | !p50<1s',
        )
        assert [s.route for s in suggest_optimizations(routes)] == ["/b", "/a"]

    def test_configured_limits(self) -> None:
        config = EngineConfig(suggested_page_limit=20, max_page_size=25)
        routes = _routes(
            'GET /a -> [M1] :: kv.scan("j:") | !p50<1s',
            'GET /b -> [M1] :: kv.scan("j:") | page(30) | !p50<1s',
        )
        add, reduce = suggest_optimizations(routes, config)
        assert add.proposed == 20
        assert reduce.proposed == 25

    def test_routes_not_mutated(self) -> None:
        routes = _routes('GET /j -> [M1] :: kv.scan("j:") | page(100) | !p99<500ms')
        before = routes[0].segments
        suggest_optimizations(routes)
        assert routes[0].segments == before
