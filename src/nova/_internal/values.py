"""Value helpers shared by the interpreter, property checks, and query parsing.

Items come from the provider as mappings or plain objects. Every reader
goes through ``field_value`` so filters and property checks see the
same fields, and compares scalars through ``stringify``.
"""

from collections.abc import Mapping
from typing import Any

MISSING: Any = object()


def stringify(value: Any) -> str:
    """Render a scalar the way the interchange format would.

    ``True`` -> ``"true"``, ``None`` -> ``"null"``, ``2.0`` -> ``"2"``.
    Enum values, query parameters and item fields compare through this.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def field_value(item: Any, name: str) -> Any:
    """Return *item*'s field *name*, or ``MISSING``.

    Mapping keys are read first; other objects are read by attribute.
    """
    if isinstance(item, Mapping):
        return item.get(name, MISSING)
    return getattr(item, name, MISSING)
