"""aiohttp server for the studysync API.

Wires the event store, import service and calendar assistant into a
``web.Application`` and runs it until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any

from aiohttp import web

from studysync.api.middleware import correlation_id_middleware
from studysync.api.routes import (
    register_assistant_routes,
    register_event_routes,
    register_import_routes,
)
from studysync.core.config_manager import StudySyncSettings, ensure_settings
from studysync.core.http_client import close_all_clients
from studysync.core.timezone_utils import today_local
from studysync.domain.assistant import CalendarAssistant
from studysync.domain.event_store import EventStore
from studysync.domain.import_service import ImportService

logger = logging.getLogger(__name__)


async def make_app(
    config: Any,
    store: EventStore | None = None,
    import_service: ImportService | None = None,
    assistant: CalendarAssistant | None = None,
) -> web.Application:
    """Create the aiohttp application.

    Components that are not passed in are built from ``config``.

    Args:
        config: Settings, a config dict, or None for defaults
        store: Event store; defaults to one scoped to ``config.user_id``
        import_service: Import service; defaults to one writing into ``store``
        assistant: Calendar assistant; defaults to one working on ``store``
    """
    settings: StudySyncSettings = ensure_settings(config)

    if store is None:
        store = EventStore(settings.user_id, settings.store_path)
    if import_service is None:
        import_service = ImportService(store, settings)
    if assistant is None:
        assistant = CalendarAssistant(store, settings.default_duration_minutes)

    app = web.Application(middlewares=[correlation_id_middleware])

    register_event_routes(
        app,
        settings=settings,
        store=store,
        today_provider=lambda: today_local(settings.default_timezone),
    )
    register_import_routes(app, import_service=import_service)
    register_assistant_routes(app, assistant=assistant)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")
        await close_all_clients()

    app.on_shutdown.append(_shutdown)
    logger.debug(
        "Application created for user %s (%d stored events)", store.user_id, len(store)
    )
    return app


async def _serve(settings: StudySyncSettings) -> None:
    """Run the server until signalled to stop."""
    stop_event = asyncio.Event()
    app = await make_app(settings)

    runner = web.AppRunner(app)
    await runner.setup()

    host = settings.server_bind
    port = settings.server_port
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise
    logger.info("Server started successfully on %s:%d", host, port)

    loop = asyncio.get_running_loop()

    def _on_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    await close_all_clients()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict, settings object or None. Recognized keys:
            - server_bind / server_port: listen address
            - relay_url: CORS relay for ICS fetches ("" to fetch directly)
            - request_timeout: HTTP request timeout in seconds
            - default_timezone: IANA zone for "today" and provider times
            - store_path / user_id: event store file and owner
            - default_duration_minutes: assumed length of new events

    Blocks until SIGINT/SIGTERM is received.
    """
    from studysync.core.logging_config import configure_logging

    settings = ensure_settings(config)
    configure_logging(debug_mode=(settings.log_level or "").upper() == "DEBUG")

    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
