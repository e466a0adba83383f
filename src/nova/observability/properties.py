"""Property checker — global invariants over the provider's current data.

Two property shapes are understood:

    U3(x) >= 0          numeric comparison (>, >=, <, <=, ≥, ≤)
    mono(U4, E1)        field value belongs to enum E1

Anything else is an unsupported shape and is treated as satisfied.
That permissiveness is deliberate and logged at DEBUG level when the
checker is built.

Each property is evaluated over the items returned by scanning one
prefix: the property's declared scope if the program gives one, or the
inferred global prefix (first ``kv.scan`` of the first route, else
``EngineConfig.default_scan_prefix``).
"""

from __future__ import annotations

import logging
import math
import operator
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from nova.compiler.segments import ScanByPrefix
from nova._internal.values import MISSING, field_value, stringify

if TYPE_CHECKING:
    from nova.capabilities import CapabilityProvider
    from nova.compiler.route import CompiledRoute

logger = logging.getLogger("nova.properties")

_COMPARISON = re.compile(r"(\w+)\(x\)\s*(>=|<=|>|<|≥|≤)\s*(-?\d+(?:\.\d+)?)")
_MONO = re.compile(r"mono\(\s*(\w+)\s*,\s*(\w+)\s*\)", re.IGNORECASE)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}
_SYNONYMS = {"≥": ">=", "≤": "<="}


@dataclass(frozen=True, slots=True)
class NumericComparison:
    """Every item's *field* compares true against *bound*."""

    field: str
    op: str
    bound: float

    def holds(self, item: Any) -> bool:
        raw = field_value(item, self.field)
        if raw is MISSING:
            return True
        value = _as_number(raw)
        if value is None:
            return False
        return _OPERATORS[self.op](value, self.bound)


@dataclass(frozen=True, slots=True)
class EnumMembership:
    """Every item's *field* is one of the values of *enum*."""

    field: str
    enum: str
    allowed: frozenset[str]

    def holds(self, item: Any) -> bool:
        value = field_value(item, self.field)
        if value is MISSING:
            return True
        return stringify(value) in self.allowed


@dataclass(frozen=True, slots=True)
class UnsupportedProperty:
    """A property shape the checker does not understand. Always holds."""

    text: str

    def holds(self, item: Any) -> bool:  # noqa: ARG002
        return True


PropertyShape: TypeAlias = NumericComparison | EnumMembership | UnsupportedProperty


@dataclass(frozen=True, slots=True)
class PropertyDeclaration:
    """A parsed property and the prefix it is checked over."""

    property_id: str
    text: str
    shape: PropertyShape
    scope: str

    @property
    def supported(self) -> bool:
        return not isinstance(self.shape, UnsupportedProperty)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def parse_property(text: str, enums: Mapping[str, Sequence[str]]) -> PropertyShape:
    """Recognize *text* as one of the supported shapes."""
    if m := _COMPARISON.search(text):
        op = _SYNONYMS.get(m.group(2), m.group(2))
        return NumericComparison(field=m.group(1), op=op, bound=float(m.group(3)))
    if m := _MONO.search(text):
        enum_id = m.group(2)
        allowed = frozenset(str(v) for v in enums.get(enum_id, ()))
        return EnumMembership(field=m.group(1), enum=enum_id, allowed=allowed)
    return UnsupportedProperty(text)


def infer_scan_prefix(routes: Sequence[CompiledRoute], default: str) -> str:
    """First ``kv.scan`` prefix of the first declared route, else *default*."""
    if routes:
        for segment in routes[0].segments:
            if isinstance(segment, ScanByPrefix):
                return segment.prefix
    return default


class PropertyChecker:
    """Evaluates all declared properties against the provider's data.

    Built once per engine; ``check()`` may run from any thread. It only
    reads through ``provider.scan`` and holds no mutable state.
    """

    __slots__ = ("_declarations", "_provider")

    def __init__(
        self,
        declarations: Sequence[PropertyDeclaration],
        provider: CapabilityProvider,
    ) -> None:
        self._declarations = tuple(declarations)
        self._provider = provider

    @classmethod
    def build(
        cls,
        properties: Mapping[str, str],
        enums: Mapping[str, Sequence[str]],
        provider: CapabilityProvider,
        *,
        default_scope: str,
        scopes: Mapping[str, str] | None = None,
    ) -> PropertyChecker:
        """Parse *properties* and resolve each one's scan scope."""
        scopes = scopes or {}
        declarations = []
        for property_id, text in properties.items():
            shape = parse_property(text, enums)
            if isinstance(shape, UnsupportedProperty):
                logger.debug("Property %s has an unsupported shape; treated as satisfied", property_id)
            declarations.append(
                PropertyDeclaration(
                    property_id=property_id,
                    text=text,
                    shape=shape,
                    scope=scopes.get(property_id, default_scope),
                )
            )
        return cls(declarations, provider)

    @property
    def declarations(self) -> tuple[PropertyDeclaration, ...]:
        return self._declarations

    def check(self) -> bool:
        """Return True if every supported property holds for every scanned item."""
        snapshots: dict[str, list[Any]] = {}
        for decl in self._declarations:
            if not decl.supported:
                continue
            if decl.scope not in snapshots:
                snapshots[decl.scope] = list(self._provider.scan(decl.scope))
            for item in snapshots[decl.scope]:
                if not decl.shape.holds(item):
                    logger.debug("Property %s violated: %s", decl.property_id, decl.text)
                    return False
        return True
