import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import required_plugins.core.logging_config  # noqa: F401  Centralized logging (must be first)
from required_plugins.api.admin import router as admin_router
from required_plugins.api.plugins import router as plugins_router
from required_plugins.core.db import init_db
from required_plugins.core.registry import ManifestError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Required plugins service started")
    yield
    logger.info("Required plugins service stopped")


app = FastAPI(title="Required Plugins", lifespan=lifespan)
app.include_router(plugins_router)
app.include_router(admin_router)


@app.exception_handler(ManifestError)
async def manifest_error_handler(request: Request, exc: ManifestError):
    logger.error(f"Failed to load plugin manifest: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Failed to load plugin manifest"})


@app.get("/")
async def root():
    return {"message": "Required Plugins admin service", "status": "ok"}
