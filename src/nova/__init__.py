"""Nova — a declarative pipeline engine.

Compiles route declarations such as::

    GET /j -> [M1] :: kv.scan("j:") | filter(U4 in ?q.s) | page(20) | !p99<500ms

into handlers, runs their pipelines against an injected capability
provider, tracks latency budgets, checks global data properties, and
suggests pipeline rewrites.

Basic usage::

    from nova import Engine, Program

    program = Program(routes={"R1": 'GET /j -> [M1] :: kv.scan("j:") | page(20)'})
    engine = Engine(program, provider)
    response = await engine.handle("GET", "/j")
    response.payload  # the pipeline's final value
"""

__version__ = "0.1.0-dev"
__all__ = [
    "Analysis",
    "CapabilityDictionary",
    "CapabilityProvider",
    "CompileError",
    "Engine",
    "EngineConfig",
    "NovaError",
    "PipelineError",
    "Program",
    "QueryParams",
    "Response",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import nova`` fast while providing a clean top-level API.
    """
    if name in ("Engine", "Analysis"):
        from nova import engine as _engine

        return getattr(_engine, name)

    if name == "EngineConfig":
        from nova.config import EngineConfig

        return EngineConfig

    if name == "Program":
        from nova.program import Program

        return Program

    if name in ("CapabilityDictionary", "CapabilityProvider"):
        from nova import capabilities as _caps

        return getattr(_caps, name)

    if name == "QueryParams":
        from nova.http.query import QueryParams

        return QueryParams

    if name == "Response":
        from nova.http.response import Response

        return Response

    if name in ("CompileError", "NovaError", "PipelineError"):
        from nova import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
