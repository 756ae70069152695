"""FastAPI application assembled from resource modules."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI

from endpoints.config import get_settings
from endpoints.resource import Resource
from endpoints.routes import build_router
from endpoints.store.base import Store

logger = logging.getLogger(__name__)


class Application:
    """A set of resources served under a common URL prefix.

    Args:
        resources: Names of the resource packages to load.
        package: Dotted name of the package holding them.
        prefix: URL prefix; defaults to ``Settings.api_prefix``.
        stores: Stores to close on application shutdown.
    """

    def __init__(
        self,
        resources: Iterable[str],
        package: str,
        prefix: str | None = None,
        stores: Iterable[Store] = (),
    ) -> None:
        self.prefix = get_settings().api_prefix if prefix is None else prefix
        self.resources = {name: Resource(name, package) for name in resources}
        self.stores = list(stores)

    def router(self) -> APIRouter:
        """Build a router exposing every resource under ``/<prefix>/<name>``."""
        router = APIRouter()
        for name, resource in self.resources.items():
            router.include_router(
                build_router(resource.routes(), prefix=f"{self.prefix}/{name}"),
                tags=[name],
            )
            logger.info("Registered resource '%s' at %s/%s", name, self.prefix, name)
        return router

    def create_app(self) -> FastAPI:
        """Create the FastAPI application; its lifespan closes the stores."""
        settings = get_settings()
        logging.getLogger("endpoints").setLevel(settings.log_level)
        stores = self.stores

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            yield
            for store in stores:
                await store.close()

        app = FastAPI(
            title="Endpoints",
            version="0.1.0",
            lifespan=lifespan,
            docs_url="/docs" if settings.debug else None,
            redoc_url="/redoc" if settings.debug else None,
        )
        app.include_router(self.router())
        return app

    def serve(self, host: str | None = None, port: int | None = None) -> None:
        """Run the application with uvicorn, defaulting to ``Settings.host``/``port``."""
        settings = get_settings()
        uvicorn.run(
            self.create_app(),
            host=host or settings.host,
            port=port or settings.port,
            log_level=settings.log_level.lower(),
        )
