# confsync/main.py
"""
Application wiring: startup resolution, store overlay and cluster propagation.

Startup order:
1. Resolve file sources + environment (blocking, fatal on error)
2. Connect the settings store and overlay persisted values
3. Connect the broadcast channel and subscribe to ``reloadConfig``
4. Apply runtime flags
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import contextlib
import logging
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from .config_handle import ConfigHandle
from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import Settings, get_settings
from .core.exceptions import StartupConfigError
from .database import build_engine, create_session_factory, init_db
from .events.config_events import ConfigEventBus, ConfigPropagationService
from .routes.admin_config import router as admin_config_router
from .services.config_service import ConfigService, init_config
from .services.runtime_applier import RuntimeApplier

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def bootstrap_config(settings: Settings) -> ConfigHandle:
    """Resolve the startup configuration or exit the process with a diagnostic."""
    try:
        return init_config(settings)
    except StartupConfigError as exc:
        logger.error(f"[CONFIG] FAILED: {exc.message}")
        if exc.code == "SOURCE_UNREADABLE":
            logger.error(
                ">>> Unable to read configuration file! Did you create the config.yml file?"
            )
        raise SystemExit(1) from exc


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app; configuration is resolved before the app object exists."""
    settings = settings or get_settings()
    config = bootstrap_config(settings)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        engine = build_engine(config.snapshot.db, echo=config.snapshot.flags.sqllog)
        await asyncio.to_thread(init_db, engine)
        session_factory = create_session_factory(engine)

        broadcast = await connect_broadcast(settings.broadcast_url)
        bus = ConfigEventBus(broadcast, channel=settings.events_channel, node_id=settings.node_id)
        config_service = ConfigService(config, session_factory, events=bus)
        applier = RuntimeApplier(config, engine)
        propagation = ConfigPropagationService(config_service, applier, bus)

        await config_service.load_from_db()
        applier.apply_flags()
        if config.snapshot.setup:
            logger.warning("[CONFIG] Running in setup mode")

        propagation.subscribe()
        await bus.start()

        reconcile_task: asyncio.Task[None] | None = None
        if settings.reconcile_interval_s > 0:
            reconcile_task = asyncio.create_task(
                propagation.run_reconciliation(settings.reconcile_interval_s)
            )

        app.state.config_service = config_service
        app.state.propagation = propagation
        logger.info(f"[CONFIG] Node {settings.node_id} ready on port {config.snapshot.port}")

        yield

        if reconcile_task is not None:
            reconcile_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reconcile_task
        await bus.stop()
        try:
            await disconnect_broadcast()
        except Exception as e:
            logger.error(f"[BROADCAST] Error disconnecting broadcaster: {e}")
        engine.dispose()

    app = FastAPI(title="confsync", version=config.version, lifespan=app_lifespan)
    app.state.settings = settings
    app.state.config = config
    app.include_router(admin_config_router)
    return app
