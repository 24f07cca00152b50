"""Application bootstrap for the Kuberoot server.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → store → rules → cluster source → REST

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that
a single failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kuberoot.config import load_config
from kuberoot.models.config import KuberootConfig
from kuberoot.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from kuberoot.collector.source import KubernetesStateSource
    from kuberoot.rules.table import RuleTable
    from kuberoot.store.base import DiagnosisStore

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KuberootApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self) -> None:
        self.config: KuberootConfig | None = None

        self._store: DiagnosisStore | None = None
        self._rules: RuleTable | None = None
        self._state_source: KubernetesStateSource | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kuberoot starting", version=_kuberoot_version(), cluster_id=self.config.cluster_id)

        await self._start_store()
        self._start_rules()
        await self._start_state_source()
        await self._start_rest()

        self._running = True
        self._log.info("kuberoot started", port=self.config.api.port)

    async def _start_store(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting store")
        try:
            from kuberoot.store import build_store

            self._store = await build_store(self.config.store)
        except Exception as exc:
            raise _ComponentError("store", exc) from exc

    def _start_rules(self) -> None:
        assert self._log is not None
        from kuberoot.rules import default_rule_table

        self._rules = default_rule_table()
        self._log.info("rule table loaded", rules=sorted(self._rules))

    async def _start_state_source(self) -> None:
        """Connect to the local cluster for ``GET /diagnose``.

        Non-fatal: without a cluster connection the server still ingests
        agent reports and serves history.
        """
        assert self._log is not None
        try:
            from kuberoot.collector.source import KubernetesStateSource

            self._state_source = await KubernetesStateSource.connect()
        except Exception as exc:
            self._log.warning("cluster connection unavailable; live scan disabled", error=str(exc))
            self._state_source = None

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self._store is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from kuberoot.api import build_app
            from kuberoot.api.app import describe_app

            fastapi_app = build_app(
                store=self._store,
                rules=self._rules,
                cluster_id=self.config.cluster_id,
                store_timeout=self.config.store.timeout_seconds,
                auth_timeout=self.config.auth.timeout_seconds,
                state_source=self._state_source,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", **describe_app(fastapi_app))
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kuberoot shutting down")

        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("cluster_source", self._state_source)
        await self._stop_component("store", self._store)
        self._state_source = None
        self._store = None

        log.info("kuberoot stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call close() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        close_fn = getattr(component, "close", None)
        if close_fn is None:
            return
        try:
            result = close_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _kuberoot_version() -> str:
    from kuberoot import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KuberootApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
