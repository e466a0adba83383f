"""Tests for nova.http.response — Response construction and JSON body."""

import pytest

from nova.http.response import Response


class TestResponse:
    def test_defaults(self) -> None:
        r = Response()
        assert r.payload is None
        assert r.status == 200
        assert r.body == b"null"

    def test_error(self) -> None:
        r = Response.error(400, "Precondition failed: U4 in [2]")
        assert r.status == 400
        assert r.json() == {"error": "Precondition failed: U4 in [2]"}

    def test_arrays_preserved(self) -> None:
        r = Response(payload=[{"U1": "job1"}, {"U1": "job2"}])
        assert r.json() == [{"U1": "job1"}, {"U1": "job2"}]

    def test_unicode_not_escaped(self) -> None:
        body = Response(payload={"name": "Sjöberg"}).body
        assert body == '{"name": "Sjöberg"}'.encode()

    def test_non_json_values_stringified(self) -> None:
        class Stamp:
            def __str__(self) -> str:
                return "2026-01-01"

        assert Response(payload={"at": Stamp()}).json() == {"at": "2026-01-01"}

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response().status = 500  # type: ignore[misc]
