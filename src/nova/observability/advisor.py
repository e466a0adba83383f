"""Optimization advisor — read-only pagination suggestions for budgeted routes.

Only routes that declare at least one latency budget are considered:

- no ``page(n)`` stage     -> suggest adding ``page(suggested_page_limit)``
- ``page(n)`` above the max -> suggest lowering it to ``max_page_size``
- otherwise                -> nothing

The advisor never mutates compiled routes or the program source.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from nova.compiler.route import CompiledRoute
from nova.compiler.segments import Page
from nova.config import EngineConfig


class SuggestionKind(Enum):
    """What the advisor proposes for a route."""

    ADD_PAGE = "add_page"
    REDUCE_PAGE = "reduce_page"


@dataclass(frozen=True, slots=True)
class Suggestion:
    """A single proposed pipeline rewrite."""

    route: str
    kind: SuggestionKind
    message: str
    current: int | None
    proposed: int


def suggest_for_route(route: CompiledRoute, config: EngineConfig) -> Suggestion | None:
    """Return the suggestion for one route, or ``None``."""
    if not route.budgets:
        return None

    page = next((s for s in route.segments if isinstance(s, Page)), None)
    if page is None:
        limit = config.suggested_page_limit
        return Suggestion(
            route=route.path,
            kind=SuggestionKind.ADD_PAGE,
            message=f"Add page({limit}) to limit results and improve latency.",
            current=None,
            proposed=limit,
        )
    if page.limit > config.max_page_size:
        return Suggestion(
            route=route.path,
            kind=SuggestionKind.REDUCE_PAGE,
            message=(
                f"Reduce page size from {page.limit} to {config.max_page_size} "
                "to meet latency budget."
            ),
            current=page.limit,
            proposed=config.max_page_size,
        )
    return None


def suggest_optimizations(
    routes: Iterable[CompiledRoute],
    config: EngineConfig | None = None,
) -> tuple[Suggestion, ...]:
    """Analyze a route snapshot and return suggestions in route order."""
    config = config or EngineConfig()
    suggestions = []
    for route in routes:
        suggestion = suggest_for_route(route, config)
        if suggestion is not None:
            suggestions.append(suggestion)
    return tuple(suggestions)
