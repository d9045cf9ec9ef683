import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI

from living_world.config import AppConfig, load_config
from living_world.debounce import AsyncioScheduler, Scheduler
from living_world.host import (
    ConnectionProfileSource,
    HostClient,
    KnowledgeBase,
    LocalLorebooks,
    StoredConnectionProfiles,
)
from living_world.interceptor import InterceptorGate
from living_world.notify import Notifier
from living_world.routes import router
from living_world.settings import SettingsStore
from living_world.storage import JsonStorage
from living_world.world import WorldBuilder, WorldStateProvider

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes need, owned by one application instance."""

    settings: SettingsStore
    lorebooks: KnowledgeBase
    profiles: ConnectionProfileSource
    notifier: Notifier
    builder: WorldBuilder
    gate: InterceptorGate


def build_services(
    config: AppConfig,
    scheduler: Scheduler | None = None,
    provider: WorldStateProvider | None = None,
) -> Services:
    storage = JsonStorage(config.data_dir)
    settings = SettingsStore(
        storage,
        scheduler or AsyncioScheduler(),
        debounce=config.save_debounce_seconds,
    )

    host = HostClient(
        config.host_url, config.host_api_key, timeout=config.host_timeout_seconds
    )
    lorebooks: KnowledgeBase
    profiles: ConnectionProfileSource
    if config.worlds_dir is not None:
        lorebooks = LocalLorebooks(config.worlds_dir)
        profiles = StoredConnectionProfiles(storage)
    else:
        lorebooks = host
        profiles = host

    notifier = Notifier()
    builder = WorldBuilder(settings, lorebooks, provider, notifier)
    return Services(
        settings=settings,
        lorebooks=lorebooks,
        profiles=profiles,
        notifier=notifier,
        builder=builder,
        gate=InterceptorGate(settings, builder),
    )


def create_app(config: AppConfig | None = None, services: Services | None = None) -> FastAPI:
    resolved = config or load_config()
    logging.basicConfig(level=resolved.log_level)
    owned = services or build_services(resolved)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Living World initializing")
        owned.settings.get()
        yield
        owned.settings.close()
        logger.info("Living World stopped")

    app = FastAPI(title="Living World", lifespan=lifespan)
    app.state.services = owned
    app.include_router(router, prefix="/api")
    return app
