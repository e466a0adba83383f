"""Pipeline segments — the closed set of stage kinds.

Each stage string is classified once by the compiler. The interpreter
then dispatches with a structural ``match`` over these frozen types and
never looks at the stage text again.
"""

from dataclasses import dataclass
from typing import Literal as LiteralType, TypeAlias

# -- Key expressions --


@dataclass(frozen=True, slots=True)
class Literal:
    """A quoted (or unrecognized) token, used verbatim."""

    text: str


@dataclass(frozen=True, slots=True)
class Variable:
    """A path variable reference, substituted per request."""

    name: str


@dataclass(frozen=True, slots=True)
class KeyExpression:
    """String-literal concatenation interleaved with path variables.

    ``'"j:"+U1'`` -> ``KeyExpression((Literal("j:"), Variable("U1")))``
    """

    parts: tuple[Literal | Variable, ...]
    source: str = ""

    @property
    def variables(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parts if isinstance(p, Variable))


# -- Conditions --


@dataclass(frozen=True, slots=True)
class FilterCondition:
    """``<field> in ?q.<param>`` or ``<field> ~ ?q.<param>``."""

    field: str
    op: LiteralType["in", "~"]
    param: str


# -- Segments --


@dataclass(frozen=True, slots=True)
class ScanByPrefix:
    """``kv.scan("prefix")`` — all items whose key starts with *prefix*."""

    prefix: str


@dataclass(frozen=True, slots=True)
class GetByKey:
    """``kv.get(expr)`` — the single item at the evaluated key."""

    key: KeyExpression


@dataclass(frozen=True, slots=True)
class Filter:
    """``filter(cond)`` — keep items of the current sequence."""

    condition: FilterCondition


@dataclass(frozen=True, slots=True)
class Page:
    """``page(n)`` — truncate the current sequence to *limit* items."""

    limit: int


@dataclass(frozen=True, slots=True)
class Precondition:
    """``req(<field> ... [v1,v2])`` — abort unless the item's field is allowed."""

    field: str
    allowed: tuple[str, ...]
    source: str = ""


@dataclass(frozen=True, slots=True)
class EffectCall:
    """``<capability>(args)`` — invoke a capability, value unchanged."""

    name: str
    args: tuple[KeyExpression, ...]


@dataclass(frozen=True, slots=True)
class Unsupported:
    """A stage the interpreter cannot run; fails the request that reaches it."""

    raw: str
    reason: str = ""


Segment: TypeAlias = (
    ScanByPrefix | GetByKey | Filter | Page | Precondition | EffectCall | Unsupported
)
