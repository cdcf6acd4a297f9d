"""Livetrain application class.

Mutable during setup (route registration, middleware, expectations).
Frozen at runtime when ``__call__()`` is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from livetrain._internal.asgi import Receive, Scope, Send
from livetrain._internal.types import ErrorHandler, Handler
from livetrain.config import AppConfig
from livetrain.middleware.protocol import Middleware
from livetrain.routing.route import Route, RouteExpectation
from livetrain.routing.router import Router
from livetrain.server.handler import handle_request

if TYPE_CHECKING:
    from livetrain.data.database import Database

logger = logging.getLogger("livetrain.server")


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: list[str] | None
    name: str | None


class App:
    """The livetrain application.

    Routes match in registration order, so register literal paths before
    parameterized siblings. ``expect()`` records sample paths that are
    dispatched once at freeze time; a wrong winner aborts startup.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app.
    """

    __slots__ = (
        "_db",
        "_error_handlers",
        "_expectations",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_migrations_dir",
        "_pending_routes",
        "_providers",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        db: Database | str | None = None,
        migrations: str | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._expectations: list[RouteExpectation] = []
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._providers: dict[type, Callable[..., Any]] = {}
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Accepts a Database instance or a connection URL string
        db = db if db is not None else self.config.database_url
        if isinstance(db, str):
            from livetrain.data.database import Database as _Database

            self._db: Database | None = _Database(db)
        else:
            self._db = db

        migrations_dir = migrations if migrations is not None else self.config.migrations_dir
        self._migrations_dir: str | None = str(migrations_dir) if migrations_dir else None

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            self._pending_routes.append(_PendingRoute(path, func, methods, name))
            return func

        return decorator

    def expect(self, path: str, route: str, *, method: str = "GET") -> None:
        """Record that *path* must dispatch to the route registered as *route*.

        Checked once when the app freezes::

            app.expect("/api/sessions/upcoming", "/api/sessions/upcoming")
            app.expect("/api/sessions/42", "/api/sessions/{id}")
        """
        self._check_not_frozen()
        self._expectations.append(RouteExpectation(path=path, route=route, method=method.upper()))

    @property
    def expectations(self) -> list[RouteExpectation]:
        """Route expectations checked at freeze time."""
        return list(self._expectations)

    @property
    def routes(self) -> list[Route]:
        """Compiled routes in match order. Freezes the app."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Service injection --

    def provide(self, annotation: type, factory: Callable[..., Any]) -> None:
        """Register a provider factory for dependency injection.

        When a handler parameter's type annotation matches *annotation*,
        livetrain calls *factory* (with no arguments) and injects the result::

            app.provide(MarketplaceStore, lambda: store)

            async def detail(id: str, store: MarketplaceStore): ...
        """
        self._check_not_frozen()
        self._providers[annotation] = factory

    @property
    def db(self) -> Database:
        """The database instance, if configured.

        Raises ``RuntimeError`` if no database was configured on this app.
        """
        if self._db is None:
            msg = (
                "No database configured. Pass db= to App() or set "
                "LIVETRAIN_DATABASE_URL."
            )
            raise RuntimeError(msg)
        return self._db

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline. First added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the database is connected and migrated.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            providers=self._providers or None,
            max_content_length=self.config.max_content_length,
            db=self._db,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, so an ambiguous route table or a
        failed self-check is reported as ``lifespan.startup.failed``
        before any request is served.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await self.startup()
                except Exception as exc:
                    logger.error("Startup failed: %s", exc)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Connect and migrate the database, then run startup hooks."""
        if self._db is not None:
            await self._db.connect()
            from livetrain.data.database import _db_var

            _db_var.set(self._db)

            if self._migrations_dir is not None:
                from livetrain.data.migrate import migrate

                await migrate(self._db, self._migrations_dir)

        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run shutdown hooks, then disconnect the database."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result
        if self._db is not None:
            await self._db.disconnect()

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
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock. Raises
        ``ConfigurationError`` for duplicate or shadowed routes and for
        failed expectations; the app stays unfrozen in that case.
        """
        router = Router()
        for pending in self._pending_routes:
            methods = frozenset(m.upper() for m in (pending.methods or ["GET"]))
            router.add(
                Route(path=pending.path, handler=pending.handler, methods=methods, name=pending.name)
            )
        router.compile()
        router.verify(self._expectations)

        self._router = router
        self._middleware = tuple(self._middleware_list)
        self._frozen = True
        logger.debug(
            "App frozen: %d routes, %d self-checks passed",
            len(router.routes),
            len(self._expectations),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and expectations before serving."
            )
            raise RuntimeError(msg)
