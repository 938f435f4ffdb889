"""FastAPI app: lifespan, middleware, static outputs and error handlers."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ugcpipe import __version__
from ugcpipe.api.routes import router, status_for
from ugcpipe.config import settings
from ugcpipe.db import init_database, shutdown
from ugcpipe.errors import GenerationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and output directory on startup; dispose the engine on exit."""
    await init_database()
    settings.storage.output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"UGC Pipeline API {__version__} ready (outputs in {settings.storage.output_dir})")

    yield

    await shutdown()
    logger.info("UGC Pipeline API stopped")


app = FastAPI(title="UGC Pipeline API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(router)

# Generated media written by LocalStorage
app.mount(
    settings.storage.public_base_url,
    StaticFiles(directory=str(settings.storage.output_dir), check_dir=False),
    name="files",
)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    return JSONResponse(
        status_code=status_for(exc.kind),
        content={"error": exc.message, "errorKind": exc.kind.value, "details": exc.details},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "errorKind": "unknown"},
    )
