"""Route compiler — route-spec strings to ``CompiledRoute``.

Grammar::

    <METHOD> <path> -> <returnType> :: <stage> ( | <stage> )*

Path variables are written ``{Name}`` and match any value without a
``/``. Stages starting with ``!`` are latency budgets
(``!p99<500ms``, ``!p50<1s``). Every other stage is a call whose name is
checked against the injected capability dictionary, except the
builtins ``filter``, ``page`` and ``req``.

Grammar violations, bad budgets and unknown capabilities raise
``CompileError``. Builtin stages whose arguments do not parse compile to
``Unsupported`` and fail only the requests that reach them.
"""

import logging
import re
from collections.abc import Collection

from nova.capabilities import CapabilityDictionary
from nova.compiler.expressions import is_quoted, parse_arguments, parse_expression, split_quoted
from nova.compiler.route import BudgetConstraint, CompiledRoute, PathSegment
from nova.compiler.segments import (
    EffectCall,
    Filter,
    FilterCondition,
    GetByKey,
    KeyExpression,
    Literal,
    Page,
    Precondition,
    ScanByPrefix,
    Segment,
    Unsupported,
    Variable,
)
from nova.config import EngineConfig
from nova.errors import CompileError, UnknownCapabilityError

logger = logging.getLogger("nova.compiler")

_HEAD = re.compile(r"^([A-Z]+)\s+(.+?)\s+->\s*(.+)$")
_PATH_VAR = re.compile(r"\{([^{}]*)\}")
_BUDGET = re.compile(r"p(\d+(?:\.\d+)?)\s*<\s*(\d+(?:\.\d+)?)\s*(ms|s)")
_CALL_NAME = re.compile(r"^([A-Za-z0-9_.]+)\(")
_CALL = re.compile(r"^[A-Za-z0-9_.]+\((.*)\)$", re.DOTALL)
_PAGE_ARG = re.compile(r"\s*(\d+)\s*")
_REQ_ARG = re.compile(r"\s*(\w+)[^\[]*\[(.+)\]\s*", re.DOTALL)
_PARAM_REF = "?q."


def parse_head(head: str) -> tuple[str, str, str]:
    """Split ``GET /j/{U1} -> M1`` into ``("GET", "/j/{U1}", "M1")``."""
    m = _HEAD.match(head.strip())
    if m is None:
        msg = f"Invalid path part: {head!r}"
        raise CompileError(msg)
    return m.group(1), m.group(2).strip(), m.group(3).strip()


def parse_path(path: str) -> list[PathSegment]:
    """Parse a path template into literal and variable segments.

    Examples::

        "/j"              -> [PathSegment("/j")]
        "/j/{U1}"         -> [PathSegment("/j/"), PathSegment("{U1}", is_param=True, ...)]
        "/j/{U1}/photos"  -> [..., PathSegment("/photos")]

    Raises ``CompileError`` for invalid or repeated variable names.
    """
    segments: list[PathSegment] = []
    seen: set[str] = set()
    pos = 0
    for m in _PATH_VAR.finditer(path):
        if m.start() > pos:
            segments.append(PathSegment(value=path[pos : m.start()]))
        name = m.group(1).strip()
        if not name.isidentifier():
            msg = f"Invalid path variable {m.group(0)!r} in {path!r}"
            raise CompileError(msg)
        if name in seen:
            msg = f"Duplicate path variable {name!r} in {path!r}"
            raise CompileError(msg)
        seen.add(name)
        segments.append(PathSegment(value=m.group(0), is_param=True, param_name=name))
        pos = m.end()
    if pos < len(path):
        segments.append(PathSegment(value=path[pos:]))
    return segments


def build_pattern(segments: list[PathSegment]) -> re.Pattern[str]:
    """Compile path segments into a full-match regex with named groups."""
    parts = [
        f"(?P<{seg.param_name}>[^/]+)" if seg.is_param else re.escape(seg.value)
        for seg in segments
    ]
    return re.compile("".join(parts))


def parse_budget(stage: str) -> BudgetConstraint:
    """Parse ``!p<N><<threshold><ms|s>`` into a ``BudgetConstraint``.

    Seconds are normalized to milliseconds.
    """
    m = _BUDGET.fullmatch(stage.lstrip("!").strip())
    if m is None:
        msg = f"Invalid budget: {stage!r} (expected e.g. '!p99<500ms')"
        raise CompileError(msg)
    percentile = float(m.group(1))
    threshold = float(m.group(2))
    if m.group(3) == "s":
        threshold *= 1000
    if not 0 < percentile <= 100:
        msg = f"Invalid budget: {stage!r} (percentile must be in (0, 100])"
        raise CompileError(msg)
    return BudgetConstraint(percentile=percentile, threshold_ms=threshold)


def parse_filter(condition: str) -> FilterCondition | None:
    """Parse ``U4 in ?q.s`` / ``U2 ~ ?q.q``; ``None`` if neither form."""
    if " in " in condition:
        field, _, rest = condition.partition(" in ")
        op = "in"
    elif "~" in condition:
        field, _, rest = condition.partition("~")
        op = "~"
    else:
        return None
    field = field.strip()
    param = rest.strip().removeprefix(_PARAM_REF)
    if not field or not param:
        return None
    return FilterCondition(field=field, op=op, param=param)


def parse_precondition(condition: str) -> Precondition | None:
    """Parse ``U4 in [2,3]`` (any connective before the list)."""
    m = _REQ_ARG.fullmatch(condition)
    if m is None:
        return None
    allowed = []
    for raw in m.group(2).split(","):
        value = raw.strip()
        if not value:
            return None
        if is_quoted(value):
            value = value[1:-1]
        allowed.append(value)
    return Precondition(field=m.group(1), allowed=tuple(allowed), source=condition.strip())


def parse_stage(
    stage: str,
    variables: Collection[str],
    capabilities: CapabilityDictionary,
    *,
    route: str = "",
) -> Segment:
    """Classify one non-budget stage into a ``Segment``."""
    name_match = _CALL_NAME.match(stage)
    if name_match is None:
        return Unsupported(stage, "not a call")

    name = name_match.group(1)
    if not capabilities.allows(name):
        raise UnknownCapabilityError(name, route)

    call = _CALL.fullmatch(stage)
    if call is None:
        return Unsupported(stage, "unbalanced call")
    args = call.group(1)

    match name:
        case "kv.scan":
            prefix = args.strip()
            if not is_quoted(prefix):
                return Unsupported(stage, "kv.scan expects a quoted prefix")
            return ScanByPrefix(prefix[1:-1])
        case "kv.get":
            if not args.strip():
                return Unsupported(stage, "kv.get expects a key")
            return GetByKey(parse_expression(args, variables))
        case "filter":
            condition = parse_filter(args)
            if condition is None:
                return Unsupported(stage, "unsupported filter condition")
            return Filter(condition)
        case "page":
            m = _PAGE_ARG.fullmatch(args)
            if m is None:
                return Unsupported(stage, "page expects a non-negative integer")
            return Page(int(m.group(1)))
        case "req":
            precondition = parse_precondition(args)
            if precondition is None:
                return Unsupported(stage, "unsupported precondition")
            return precondition
        case _:
            return EffectCall(name, parse_arguments(args, variables))


def compile_route(
    route_id: str,
    spec: str,
    *,
    capabilities: CapabilityDictionary,
    config: EngineConfig | None = None,
    precondition_key: str | None = None,
) -> CompiledRoute:
    """Compile one route declaration.

    Args:
        route_id: Declaration id (``R1``), kept for diagnostics.
        spec: The raw route string.
        capabilities: Names stages may call.
        config: Supplies the default precondition key prefix.
        precondition_key: Explicit key expression for ``req(...)`` stages.
            Defaults to ``config.precondition_key_prefix`` + the first
            path variable.
    """
    config = config or EngineConfig()
    head, sep, pipeline = spec.partition("::")
    if not sep:
        logger.debug("Route %s has no pipeline", route_id)
    method, path, return_type = parse_head(head)
    path_segments = parse_path(path)
    label = f"{route_id} ({method} {path})"
    variables = [s.param_name for s in path_segments if s.param_name]

    segments: list[Segment] = []
    budgets: list[BudgetConstraint] = []
    for raw in split_quoted(pipeline, "|"):
        stage = raw.strip()
        if not stage:
            continue
        if stage.startswith("!"):
            budgets.append(parse_budget(stage))
            continue
        segment = parse_stage(stage, variables, capabilities, route=label)
        if isinstance(segment, Unsupported):
            logger.warning("Route %s: stage %r will fail at request time: %s",
                           label, stage, segment.reason)
        segments.append(segment)

    key: KeyExpression | None
    if precondition_key is not None:
        key = parse_expression(precondition_key, variables)
    elif variables:
        key = KeyExpression(
            (Literal(config.precondition_key_prefix), Variable(variables[0])),
            source=f'"{config.precondition_key_prefix}"+{variables[0]}',
        )
    else:
        key = None

    return CompiledRoute(
        route_id=route_id,
        method=method,
        path=path,
        return_type=return_type,
        path_segments=tuple(path_segments),
        pattern=build_pattern(path_segments),
        segments=tuple(segments),
        budgets=tuple(budgets),
        precondition_key=key,
        source=spec,
    )
