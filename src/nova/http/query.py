"""Immutable query string parameters.

Implements ``Mapping[str, str]`` with multi-value access. Filter stages
read parameter *sets* through ``get_list`` and single values through ``get``.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any
from urllib.parse import parse_qs

from nova._internal.values import stringify


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    Attributes:
        _data: Parsed query as field name -> list of values.

    Accepts a raw query string (``str`` or ``bytes``) or a mapping whose
    values are a single value or an iterable of values. Non-string values
    are rendered with ``stringify``::

        QueryParams(b"s=1&s=2")
        QueryParams({"s": ["1", "2"], "q": "vessel"})

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.
    """

    _data: dict[str, list[str]]

    __slots__ = ("_data",)

    def __init__(
        self,
        query: bytes | str | Mapping[str, Any] | None = None,
    ) -> None:
        if query is None:
            parsed: dict[str, list[str]] = {}
        elif isinstance(query, bytes):
            parsed = parse_qs(query.decode("latin-1"), keep_blank_values=True)
        elif isinstance(query, str):
            parsed = parse_qs(query.lstrip("?"), keep_blank_values=True)
        else:
            parsed = {}
            for key, value in query.items():
                if isinstance(value, str):
                    parsed[key] = [value]
                elif isinstance(value, bytes):
                    parsed[key] = [value.decode("latin-1")]
                elif isinstance(value, Iterable):
                    parsed[key] = [stringify(v) for v in value]
                else:
                    parsed[key] = [stringify(value)]
        object.__setattr__(self, "_data", parsed)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self._data[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))
