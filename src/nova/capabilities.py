"""Capabilities — the dictionary pipelines are checked against, and the
provider protocol they execute against.

The dictionary is a frozen lookup built once and injected into the
compiler. The provider is the live backend the interpreter calls into.

Free-threading safety:
    - CapabilityDictionary wraps a dict built at construction, never mutated
    - Provider implementations own their synchronization
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

# Stage names handled by the interpreter itself, never looked up.
BUILTINS: frozenset[str] = frozenset({"filter", "page", "req"})

# Capability name -> provider method name.
BINDINGS: dict[str, str] = {
    "kv.get": "get",
    "kv.set": "set",
    "kv.scan": "scan",
    "http.post": "post",
    "clock.now": "now",
    "crypto.hash": "hash",
}


@runtime_checkable
class CapabilityProvider(Protocol):
    """The backend a pipeline runs against.

    ``get``, ``set``, ``scan``, ``now`` and ``hash`` are synchronous.
    ``post`` may return an awaitable; it is the only stage that suspends.
    Concurrent reads are expected to be safe. Concurrent writes to the
    same key are last-writer-wins.
    """

    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any) -> Any: ...
    def scan(self, prefix: str) -> Sequence[Any]: ...
    def post(self, host: str, path: str, body: Any) -> Any: ...
    def now(self) -> Any: ...
    def hash(self, data: bytes) -> str: ...


class CapabilityDictionary(Mapping[str, bool]):
    """Immutable capability name -> validity table.

    Usage::

        caps = CapabilityDictionary({"kv.scan": True, "kv.get": True})
        caps = CapabilityDictionary.from_json("dictionary.json")
        "kv.scan" in caps  # True only for entries marked valid
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Any] | None = None) -> None:
        self._entries: dict[str, bool] = {
            name: bool(valid) for name, valid in (entries or {}).items()
        }

    @classmethod
    def default(cls) -> CapabilityDictionary:
        """Every capability the interpreter knows how to bind."""
        return cls(dict.fromkeys(BINDINGS, True))

    @classmethod
    def from_json(cls, path: str | Path) -> CapabilityDictionary:
        """Load a dictionary file shaped ``{"capabilities": {name: valid}}``.

        A flat ``{name: valid}`` object is accepted as well.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict) and isinstance(data.get("capabilities"), dict):
            data = data["capabilities"]
        if not isinstance(data, dict):
            msg = f"Capability dictionary {str(path)!r} must be a JSON object"
            raise ValueError(msg)
        return cls(data)

    def allows(self, name: str) -> bool:
        """True if *name* is a builtin or a capability marked valid."""
        return name in BUILTINS or self._entries.get(name, False)

    def __getitem__(self, name: str) -> bool:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return bool(self._entries.get(name, False)) if isinstance(name, str) else False

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CapabilityDictionary({sorted(self._entries)!r})"
