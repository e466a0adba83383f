"""CompiledRoute, BudgetConstraint, and RouteMatch frozen dataclasses."""

import re
from dataclasses import dataclass, field

from nova.compiler.segments import KeyExpression, Segment
from nova.observability.budget import LatencyHistory


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/j``     (is_param=False)
    Param:   ``/{U1}``  (is_param=True, param_name="U1")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


@dataclass(frozen=True, slots=True)
class BudgetConstraint:
    """A latency budget: *percentile* of observed latencies must stay at or
    under *threshold_ms*.
    """

    percentile: float
    threshold_ms: float

    def __str__(self) -> str:
        return f"p{self.percentile:g}<{self.threshold_ms:g}ms"


@dataclass(frozen=True, slots=True)
class CompiledRoute:
    """The immutable, executable form of one route declaration.

    Created once when the engine freezes. Everything is fixed except
    ``history``, an owned object that only ever grows.
    """

    route_id: str
    method: str
    path: str
    return_type: str
    path_segments: tuple[PathSegment, ...]
    pattern: re.Pattern[str]
    segments: tuple[Segment, ...]
    budgets: tuple[BudgetConstraint, ...]
    precondition_key: KeyExpression | None = None
    source: str = ""
    history: LatencyHistory = field(default_factory=LatencyHistory, compare=False, repr=False)

    @property
    def variables(self) -> tuple[str, ...]:
        """Path variable names in declaration order."""
        return tuple(s.param_name for s in self.path_segments if s.param_name)

    @property
    def label(self) -> str:
        return f"{self.method} {self.path}"

    def match(self, method: str, path: str) -> dict[str, str] | None:
        """Return captured path variables, or ``None`` if this route doesn't apply."""
        if method != self.method:
            return None
        m = self.pattern.fullmatch(path)
        if m is None:
            return None
        return m.groupdict()


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: CompiledRoute
    path_params: dict[str, str]
