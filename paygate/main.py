import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paygate import __version__
from paygate.core.config import get_settings
from paygate.core.container import ApplicationContainer, get_container
from paygate.interfaces.http import create_api_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def sweep_sessions_periodically(container: ApplicationContainer) -> None:
    interval = container.settings.sessions.sweep_interval_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await container.sessions.sweep_expired()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Session sweep failed")
            continue
        if removed:
            logger.info("Removed %s expired payment sessions", removed)


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or get_container()
    settings = container.settings
    configure_logging(settings.logging.level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.init_infrastructure()
        sweeper = asyncio.create_task(sweep_sessions_periodically(container), name="session-sweeper")
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            await container.shutdown()
            if settings.storage.backend == "database":
                from paygate.infrastructure.database.session import dispose_engine

                await dispose_engine()

    app = FastAPI(
        title=settings.project_name,
        description="加密货币支付网关",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", tags=["系统"])
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "active_checkouts": len(container.registry),
        }

    return app


app = create_app()
