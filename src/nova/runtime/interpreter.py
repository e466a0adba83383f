"""Pipeline interpreter — runs one compiled route for one request.

A single current value (initially ``None``) is threaded through the
route's segments in order. Every stage is synchronous except an
``EffectCall`` whose provider method returns an awaitable; that await
suspends only this request.

Errors are ``PipelineError`` subclasses. The engine turns them into an
error response; nothing partial is returned.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from nova._internal.invoke import invoke
from nova._internal.values import MISSING, field_value, stringify
from nova.capabilities import BINDINGS, CapabilityProvider
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
    Unsupported,
    Variable,
)
from nova.errors import MissingKeyError, PipelineTypeError, PreconditionFailed, UnsupportedSegment
from nova.http.query import QueryParams

if TYPE_CHECKING:
    from nova.compiler.route import CompiledRoute


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Per-request inputs. Created for one request, discarded after."""

    provider: CapabilityProvider
    path_params: Mapping[str, str] = field(default_factory=dict)
    query: QueryParams = field(default_factory=QueryParams)


def evaluate_expression(expr: KeyExpression, ctx: RequestContext) -> str:
    """Concatenate literals and substituted path variables."""
    out: list[str] = []
    for part in expr.parts:
        match part:
            case Literal(text=text):
                out.append(text)
            case Variable(name=name):
                value = ctx.path_params.get(name)
                if value is None:
                    msg = f"Path variable {name!r} is not bound for this request"
                    raise MissingKeyError(msg)
                out.append(value)
    return "".join(out)


def _keep(item: Any, condition: FilterCondition, query: QueryParams) -> bool:
    value = field_value(item, condition.field)
    if condition.op == "in":
        wanted = query.get_list(condition.param)
        if not wanted:
            return True
        return value is not MISSING and stringify(value) in wanted
    needle = (query.get(condition.param) or "").lower()
    text = "" if value is MISSING else stringify(value)
    return needle in text.lower()


def check_precondition(
    segment: Precondition,
    key: KeyExpression | None,
    ctx: RequestContext,
) -> None:
    """Raise ``PreconditionFailed`` unless the authoritative item passes."""
    if key is None:
        msg = f"No key to fetch for precondition {segment.source!r}: route has no path variables"
        raise MissingKeyError(msg)
    item = ctx.provider.get(evaluate_expression(key, ctx))
    if item is None:
        raise PreconditionFailed(segment.source)
    value = field_value(item, segment.field)
    if value is MISSING or stringify(value) not in segment.allowed:
        raise PreconditionFailed(segment.source)


async def call_capability(name: str, args: list[str], provider: CapabilityProvider) -> Any:
    """Invoke capability *name* on *provider* with evaluated string args."""
    method_name = BINDINGS.get(name)
    method = getattr(provider, method_name, None) if method_name else None
    if method is None:
        raise UnsupportedSegment(name, "no provider binding")
    if name == "crypto.hash":
        return await invoke(method, *(a.encode("utf-8") for a in args))
    return await invoke(method, *args)


async def execute_pipeline(route: CompiledRoute, ctx: RequestContext) -> Any:
    """Run *route*'s segments in order and return the final value."""
    data: Any = None
    for segment in route.segments:
        match segment:
            case ScanByPrefix(prefix=prefix):
                data = list(ctx.provider.scan(prefix))
            case GetByKey(key=key):
                data = ctx.provider.get(evaluate_expression(key, ctx))
            case Filter(condition=condition):
                if not isinstance(data, (list, tuple)):
                    msg = f"filter can only be applied to sequences, got {type(data).__name__}"
                    raise PipelineTypeError(msg)
                data = [item for item in data if _keep(item, condition, ctx.query)]
            case Page(limit=limit):
                if isinstance(data, (list, tuple)):
                    data = data[:limit]
            case Precondition():
                check_precondition(segment, route.precondition_key, ctx)
            case EffectCall(name=name, args=args):
                values = [evaluate_expression(arg, ctx) for arg in args]
                await call_capability(name, values, ctx.provider)
            case Unsupported(raw=raw, reason=reason):
                raise UnsupportedSegment(raw, reason)
            case _:
                raise UnsupportedSegment(repr(segment))
    return data
