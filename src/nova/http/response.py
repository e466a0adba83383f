"""Dispatch outcome with a JSON interchange body.

Immutable once built.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Response:
    """The result of dispatching one request.

    ``payload`` is the pipeline's final value on success, or an
    ``{"error": ...}`` mapping on failure. ``body`` renders it as JSON
    (field-name to value mappings, arrays preserved) for whatever
    transport the caller uses.
    """

    payload: Any = None
    status: int = 200

    # -- Constructors --

    @classmethod
    def error(cls, status: int, message: str) -> Response:
        """Build an error response with a ``{"error": message}`` payload."""
        return cls(payload={"error": message}, status=status)

    # -- Body helpers --

    @property
    def body(self) -> bytes:
        """Payload serialized as UTF-8 JSON."""
        return json_module.dumps(
            self.payload, ensure_ascii=False, default=str
        ).encode("utf-8")

    def json(self) -> Any:
        """Round-trip the payload through the interchange format."""
        return json_module.loads(self.body)
