"""Nova exception hierarchy.

Shared across the compiler, interpreter, and engine so every module
raises and catches the same types.

Two families matter at runtime:

- ``CompileError`` is fatal. It surfaces from ``Engine.compile()`` and the
  whole program is rejected before any request is served.
- ``PipelineError`` is per-request. The engine converts it into a 400
  response at the request boundary; other requests are unaffected.
"""

from dataclasses import dataclass


class NovaError(Exception):
    """Base for all nova-specific errors."""


class CompileError(NovaError):
    """Raised when a route or budget declaration is malformed.

    Typically caught during ``Engine._freeze()`` at startup.
    """


class UnknownCapabilityError(CompileError):
    """A pipeline stage names a capability missing from the dictionary."""

    def __init__(self, name: str, route: str = "") -> None:
        self.name = name
        self.route = route
        where = f" in route {route!r}" if route else ""
        super().__init__(f"Unknown capability: {name}{where}")


class PipelineError(NovaError):
    """Base for errors raised while a pipeline executes one request."""


class UnsupportedSegment(PipelineError):  # noqa: N818 — mirrors the stage it names
    """The pipeline reached a stage the interpreter cannot execute."""

    def __init__(self, raw: str, reason: str = "") -> None:
        self.raw = raw
        self.reason = reason
        detail = f"Unsupported segment: {raw}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)


class PreconditionFailed(PipelineError):  # noqa: N818 — conventional name
    """A ``req(...)`` stage rejected the request."""

    def __init__(self, condition: str) -> None:
        self.condition = condition
        super().__init__(f"Precondition failed: {condition}")


class PipelineTypeError(PipelineError):
    """A stage received a current value of the wrong shape."""


class MissingKeyError(PipelineError):
    """A key expression referenced data the request does not carry."""


@dataclass(frozen=True, slots=True)
class HTTPError(NovaError):
    """An outcome that maps directly to a status code.

    Raised by the router; the engine turns it into a ``Response``.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no compiled route matched the request."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status=404, detail=detail)
