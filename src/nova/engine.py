"""Nova engine — compiles a program and dispatches requests through it.

Mutable during setup (hook registration).
Frozen at runtime when ``compile()`` or ``handle()`` is first invoked.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from anyio import to_thread

from nova._internal.invoke import invoke
from nova.capabilities import CapabilityDictionary, CapabilityProvider
from nova.compiler.parser import compile_route
from nova.compiler.route import CompiledRoute
from nova.compiler.router import Router
from nova.config import EngineConfig
from nova.errors import NotFound, PipelineError
from nova.http.query import QueryParams
from nova.http.response import Response
from nova.observability.advisor import Suggestion, suggest_optimizations
from nova.observability.budget import BudgetTracker
from nova.observability.properties import PropertyChecker, infer_scan_prefix
from nova.program import Program
from nova.runtime.interpreter import RequestContext, execute_pipeline

logger = logging.getLogger("nova.engine")

Hook = Callable[..., Any]
QueryInput = QueryParams | Mapping[str, Any] | str | bytes | None


@dataclass(frozen=True, slots=True)
class Analysis:
    """Result of one observation pass over the current data and routes."""

    properties_ok: bool
    suggestions: tuple[Suggestion, ...] = ()


class Engine:
    """The nova pipeline engine.

    Usage::

        engine = Engine(program, provider)

        @engine.on_budget_violation
        def alert(route, percentile, observed, threshold):
            ...

        engine.compile()  # optional: raises CompileError before serving
        response = await engine.handle("GET", "/j", {"s": ["2"]})

    Thread safety:
        Hook registration is single-threaded setup. The freeze transition
        uses a Lock + double-check so exactly one thread compiles the
        program. After that, the router and checker are read-only and
        each route's latency history guards itself.
    """

    __slots__ = (
        "_budget_hooks",
        "_checker",
        "_freeze_lock",
        "_frozen",
        "_pending",
        "_property_hooks",
        "_router",
        "_tracker",
        "capabilities",
        "config",
        "program",
        "provider",
    )

    def __init__(
        self,
        program: Program | Mapping[str, Any],
        provider: CapabilityProvider,
        *,
        capabilities: CapabilityDictionary | Mapping[str, Any] | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        if not isinstance(program, Program):
            program = Program.from_mapping(program)
        if capabilities is None:
            capabilities = CapabilityDictionary.default()
        elif not isinstance(capabilities, CapabilityDictionary):
            capabilities = CapabilityDictionary(capabilities)

        self.program: Program = program
        self.provider: CapabilityProvider = provider
        self.capabilities: CapabilityDictionary = capabilities
        self.config: EngineConfig = config or EngineConfig()
        self._budget_hooks: list[Hook] = []
        self._property_hooks: list[Hook] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._tracker = BudgetTracker()
        self._pending: set[asyncio.Task[None]] = set()

        # Compiled state — set during _freeze()
        self._router: Router | None = None
        self._checker: PropertyChecker | None = None

    # -- Hooks --

    def on_budget_violation(self, func: Hook) -> Hook:
        """Register a budget violation hook via decorator.

        Called as ``func(route, percentile, observed, threshold)`` after a
        request pushes a route's percentile over its threshold. Sync or
        async. Failures are logged; the response is never affected.
        """
        self._check_not_frozen()
        self._budget_hooks.append(func)
        return func

    def on_property_check_failure(self, func: Hook) -> Hook:
        """Register a hook called with no arguments when a property check fails."""
        self._check_not_frozen()
        self._property_hooks.append(func)
        return func

    # -- Compilation --

    def compile(self) -> None:
        """Compile the program now.

        Raises ``CompileError`` for any malformed route or unknown
        capability; the engine then refuses to serve.
        """
        self._ensure_frozen()

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        """Compiled routes in declaration order."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Dispatch --

    async def handle(
        self,
        method: str,
        path: str,
        query: QueryInput = None,
    ) -> Response:
        """Dispatch one request and return its response.

        404 when no route matches, 400 for a pipeline error, 500 for
        anything unexpected. None of these escape the engine.
        """
        self._ensure_frozen()
        assert self._router is not None

        try:
            match = self._router.match(method, path)
        except NotFound as exc:
            logger.debug("404 %s", exc.detail)
            return Response.error(exc.status, "Not found")

        route = match.route
        start = time.perf_counter()
        try:
            ctx = RequestContext(
                provider=self.provider,
                path_params=match.path_params,
                query=query if isinstance(query, QueryParams) else QueryParams(query),
            )
            result = await execute_pipeline(route, ctx)
        except PipelineError as exc:
            logger.info("400 %s %s — %s", method, path, exc)
            return Response.error(400, str(exc))
        except Exception as exc:
            logger.exception("500 %s %s", method, path)
            if self.config.debug:
                return Response.error(500, f"{type(exc).__name__}: {exc}")
            return Response.error(500, "Internal error")
        duration_ms = (time.perf_counter() - start) * 1000

        for violation in self._tracker.record(route, duration_ms):
            await self._fire(
                self._budget_hooks,
                violation.route,
                violation.percentile,
                violation.observed,
                violation.threshold,
            )

        if self.config.observe_requests:
            self._schedule_observation()

        return Response(payload=result)

    # -- Observation --

    def analyze(self) -> Analysis:
        """Run the property check and the advisor once. Blocking, no side effects."""
        self._ensure_frozen()
        assert self._router is not None
        assert self._checker is not None

        properties_ok = self._checker.check() if self.config.check_properties else True
        suggestions: tuple[Suggestion, ...] = ()
        if self.config.suggest_optimizations:
            suggestions = suggest_optimizations(self._router.routes, self.config)
        return Analysis(properties_ok=properties_ok, suggestions=suggestions)

    async def observe(self) -> Analysis:
        """Run ``analyze()`` in a worker thread, then log and fire hooks."""
        analysis = await to_thread.run_sync(self.analyze)
        if not analysis.properties_ok:
            logger.warning("Property check failed")
            await self._fire(self._property_hooks)
        for suggestion in analysis.suggestions:
            logger.info("Suggestion for %s: %s", suggestion.route, suggestion.message)
        return analysis

    async def drain(self) -> None:
        """Wait until every scheduled observation pass has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _schedule_observation(self) -> None:
        task = asyncio.get_running_loop().create_task(self._observe_quietly())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _observe_quietly(self) -> None:
        try:
            await self.observe()
        except Exception:
            logger.exception("Observation pass failed")

    async def _fire(self, hooks: Iterable[Hook], *args: Any) -> None:
        for hook in hooks:
            try:
                await invoke(hook, *args)
            except Exception:
                logger.exception("Hook %r failed", hook)

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the program into its frozen runtime state.

        MUST only be called while holding _freeze_lock. A ``CompileError``
        leaves the engine unfrozen.
        """
        # 1. Compile route table
        router = Router()
        for route_id, spec in self.program.routes.items():
            router.add(
                compile_route(
                    route_id,
                    spec,
                    capabilities=self.capabilities,
                    config=self.config,
                    precondition_key=self.program.precondition_keys.get(route_id),
                )
            )
        router.compile()

        # 2. Resolve property scopes against the compiled routes
        default_scope = infer_scan_prefix(router.routes, self.config.default_scan_prefix)
        checker = PropertyChecker.build(
            self.program.properties,
            self.program.enums,
            self.provider,
            default_scope=default_scope,
            scopes=self.program.property_scopes,
        )

        self._router = router
        self._checker = checker
        self._frozen = True
        logger.info(
            "Compiled %d routes and %d properties (scan scope %r)",
            len(router),
            len(checker.declarations),
            default_scope,
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the engine after it has compiled. "
                "Register hooks before calling compile() or handle()."
            )
            raise RuntimeError(msg)
