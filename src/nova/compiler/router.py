"""Compiled router with declaration-order matching.

Routes are added while the engine compiles and frozen afterwards.
Matching walks routes in declaration order, skips routes whose method
differs, and returns the first full path match. There is no specificity
tie-break beyond that order.
"""

from nova.compiler.route import CompiledRoute, RouteMatch
from nova.errors import NotFound


class Router:
    """Ordered route table.

    Usage::

        router = Router()
        router.add(compile_route("R1", 'GET /j -> [M1] :: kv.scan("j:")', capabilities=caps))
        router.compile()
        match = router.match("GET", "/j")
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: list[CompiledRoute] = []
        self._compiled = False

    def add(self, route: CompiledRoute) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append(route)

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        """All routes in declaration order."""
        return tuple(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path against compiled routes.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route applies.
        """
        method = method.upper()
        for route in self._routes:
            params = route.match(method, path)
            if params is not None:
                return RouteMatch(route=route, path_params=params)
        raise NotFound(f"No route matches {method} {path!r}")

    def __len__(self) -> int:
        return len(self._routes)
