"""Program — the declaration tables handed over by the front-end.

The front-end parser is a separate collaborator. It produces four
insertion-ordered mappings keyed by declaration id (``M1``, ``E1``,
``P1``, ``R1``...). Routes and properties stay raw strings; enums are
ordered value lists. Nova compiles what it needs from here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Program:
    """An immutable program declaration.

    Two optional tables make implicit conventions explicit:

    ``precondition_keys``
        Route id -> key expression (e.g. ``'"j:"+U1'``) that ``req(...)``
        stages of that route fetch. Routes without an entry use
        ``EngineConfig.precondition_key_prefix`` + the first path variable.

    ``property_scopes``
        Property id -> scan prefix the property is evaluated over.
        Properties without an entry use the inferred global prefix.
    """

    routes: Mapping[str, str] = field(default_factory=dict)
    properties: Mapping[str, str] = field(default_factory=dict)
    enums: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    models: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    transitions: Mapping[str, str] = field(default_factory=dict)
    precondition_keys: Mapping[str, str] = field(default_factory=dict)
    property_scopes: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Program:
        """Build a Program from a plain mapping (e.g. a decoded JSON AST).

        Missing tables default to empty. Enum values are stringified so
        membership checks compare like with like.
        """
        enums = {
            enum_id: tuple(str(v) for v in values)
            for enum_id, values in dict(data.get("enums") or {}).items()
        }
        return cls(
            routes=dict(data.get("routes") or {}),
            properties=dict(data.get("properties") or {}),
            enums=enums,
            models={k: dict(v) for k, v in dict(data.get("models") or {}).items()},
            transitions=dict(data.get("transitions") or {}),
            precondition_keys=dict(data.get("precondition_keys") or {}),
            property_scopes=dict(data.get("property_scopes") or {}),
        )
