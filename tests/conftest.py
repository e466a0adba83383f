"""Shared pytest fixtures for nova tests.

Provides an in-memory capability provider and a small jobs program
modelled on the demo data: items under ``j:<id>`` with fields U1..U6.
"""

import hashlib
import threading
from typing import Any

import pytest

from nova.capabilities import CapabilityDictionary
from nova.program import Program


class MemoryProvider:
    """Dict-backed provider. Records every outbound post."""

    def __init__(self, items: dict[str, Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, Any] = dict(items or {})
        self.posts: list[tuple[str, str, Any]] = []
        self.clock = "2026-01-01T00:00:00Z"

    def get(self, key: str) -> Any:
        with self._lock:
            return self._store.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = value

    def scan(self, prefix: str) -> list[Any]:
        with self._lock:
            return [v for k, v in self._store.items() if k.startswith(prefix)]

    async def post(self, host: str, path: str, body: Any) -> dict[str, bool]:
        self.posts.append((host, path, body))
        return {"ok": True}

    def now(self) -> str:
        return self.clock

    def hash(self, data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()


def job(job_id: str, **fields: Any) -> dict[str, Any]:
    item = {"U1": job_id, "U2": f"Job {job_id}", "U3": 10, "U4": 1, "U5": "Vessel 1"}
    item.update(fields)
    return item


@pytest.fixture
def provider() -> MemoryProvider:
    return MemoryProvider(
        {
            "j:job1": job("job1", U2="Hull repair", U4=1),
            "j:job2": job("job2", U2="Engine overhaul", U4=2, U3=250),
            "j:job3": job("job3", U2="Deck paint", U4=3, U5="Vessel 2"),
            "u:alice": {"name": "alice"},
        }
    )


@pytest.fixture
def empty_provider() -> MemoryProvider:
    return MemoryProvider()


@pytest.fixture
def capabilities() -> CapabilityDictionary:
    return CapabilityDictionary.default()


@pytest.fixture
def jobs_program() -> Program:
    return Program(
        routes={
            "R1": 'GET /j -> [M1] :: kv.scan("j:") | filter(U4 in ?q.s) | '
            "filter(U2 ~ ?q.q) | page(50) | !p99<500ms",
            "R2": 'GET /j/{U1} -> M1 :: kv.get("j:"+U1)',
            "R3": 'POST /j/{U1}/notify -> M1 :: req(U4 in [2,3]) | '
            'http.post("notify.example", "/u/"+U1, "ready") | kv.get("j:"+U1)',
        },
        properties={
            "P1": "∀x∈M1. U3(x) ≥ 0",
            "P2": "mono(U4, E1)",
        },
        enums={"E1": ("0", "1", "2", "3", "4", "5")},
    )
