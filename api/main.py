from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from core import log
from core.db import Database
from core.errors import DatasetAccessError
from core.settings import Settings, load_settings
from health import router as health_router
from publication import router as publication_router
from storage import Storage, create_storage
from workflows.repository import WorkflowRepository


def create_app(
    *,
    settings: Settings | None = None,
    repository: WorkflowRepository | None = None,
    storage: Storage | None = None,
) -> FastAPI:
    """
    Build the gateway.

    Collaborators passed in are used as-is and never closed by the app.
    Missing ones are built from settings (or the environment) at startup
    and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with AsyncExitStack() as stack:
            if getattr(app.state, "workflows", None) is None or getattr(app.state, "storage", None) is None:
                config = settings or load_settings()
                log.configure_logging(config.log_level)

                if getattr(app.state, "workflows", None) is None:
                    database = Database(
                        config.database_url,
                        max_size=config.database_pool_max_size,
                        acquire_timeout_s=config.database_acquire_timeout_s,
                        command_timeout_s=config.database_command_timeout_s,
                    )
                    await database.start()
                    stack.push_async_callback(database.close)
                    app.state.workflows = WorkflowRepository(
                        database, healthz_timeout_s=config.healthz_timeout_s
                    )

                if getattr(app.state, "storage", None) is None:
                    app.state.storage = create_storage(config)
                    stack.push_async_callback(app.state.storage.aclose)

            yield

    app = FastAPI(lifespan=lifespan)
    if repository is not None:
        app.state.workflows = repository
    if storage is not None:
        app.state.storage = storage

    app.middleware("http")(log.access_log_middleware)

    @app.exception_handler(DatasetAccessError)
    async def dataset_access_error_handler(_: Request, exc: DatasetAccessError) -> PlainTextResponse:
        return PlainTextResponse(exc.text, status_code=exc.status_code)

    app.include_router(health_router.router, tags=["health"])
    app.include_router(publication_router.router, tags=["datasets"])
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = load_settings()
    log.configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    run()
