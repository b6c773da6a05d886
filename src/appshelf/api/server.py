import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from appshelf.api.routers import admin, catalog
from appshelf.bootstrap.manager import Services, build_services
from appshelf.config.settings import Config, config
from appshelf.version import get_version

logger = logging.getLogger(__name__)


def create_app(settings: Config = config, services: Optional[Services] = None) -> FastAPI:
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.synchronizer.start()
        logger.info("Catalog API ready")
        try:
            yield
        finally:
            await services.synchronizer.stop()
            await services.store.close()
            services.gate.close()

    app = FastAPI(
        title="AppShelf API",
        description="Catalog and admin API for downloadable Android apps.",
        version=get_version(),
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.synchronizer = services.synchronizer
    app.state.gate = services.gate
    app.state.blobs = services.blobs

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(catalog.router)
    app.include_router(admin.router)

    asset_directory = getattr(services.blobs, "directory", None)
    if asset_directory:
        os.makedirs(asset_directory, exist_ok=True)
        app.mount("/assets", StaticFiles(directory=asset_directory), name="assets")

    return app
