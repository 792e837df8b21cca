"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import MAX_FILES, MAX_TOTAL_SIZE, EXPIRY_TIME, settings
from .api.router import api_router
from .errors import QuickDropError
from .services.registry import TransferRegistry
from .services.transfer_service import TransferService
from .storage.blob_store import BlobStore

# Configure logging for our modules
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")
logging.getLogger("quickdrop").setLevel(settings.log_level.upper())

logger = logging.getLogger(__name__)


def build_service() -> TransferService:
    blob_store = BlobStore(settings.uploads_dir)
    registry = TransferRegistry(blob_store)
    return TransferService(registry, blob_store)


def create_app(service: Optional[TransferService] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.transfer_service = service or build_service()
        blob_store = app.state.transfer_service.blob_store
        logger.info(f"Uploads directory: {blob_store.root}")
        leftover = blob_store.keys()
        if leftover:
            logger.warning(f"{len(leftover)} blobs from a previous run have no transfer and will not be served")
        logger.info(
            f"Max files: {MAX_FILES}, Max total size: {MAX_TOTAL_SIZE // (1024 * 1024)}MB, "
            f"Expiry: {int(EXPIRY_TIME.total_seconds())}s"
        )
        yield
        await app.state.transfer_service.registry.close()

    app = FastAPI(
        title="quickdrop",
        version="0.1.0",
        description="Ephemeral file relay with short numeric codes",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(QuickDropError)
    async def quickdrop_error_handler(request: Request, exc: QuickDropError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "category": exc.category},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "category": "validation"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(api_router, prefix="/api")

    return app
