from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import os
import uvicorn
import logging

from gallery.storage.base import BlobStore
from gallery.storage.disk import DiskBlobStore
from gallery.storage.dynamodb import DynamoDBService
from gallery.storage.s3 import S3BlobStore
from gallery.image_service.repository import ImageRepository
from gallery.users.directory import UserDirectory
from gallery.settings import settings
from gallery.routers.images import router as image_router
from gallery.routers.users import router as user_router
from gallery.exceptions import add_exception_handlers

logging.basicConfig(level=settings.log_level)
log = logging.getLogger("gallery-service")

def build_blob_store() -> BlobStore:
    """Picks the blob backend named by STORAGE_BACKEND."""
    if settings.storage_backend == "disk":
        return DiskBlobStore()
    if settings.storage_backend == "s3":
        return S3BlobStore()
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Initializes and closes resources (blob store, DynamoDB) for the application.
    """
    # Initialize resources
    app.state.blobs = build_blob_store()
    app.state.db = DynamoDBService()
    app.state.images = ImageRepository(app.state.db)
    app.state.users = UserDirectory(app.state.db)
    log.info("Using %s blob storage", settings.storage_backend)
    yield
    # Cleanup resources
    app.state.blobs.close()
    app.state.db.close()

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_title,
        lifespan=lifespan,
        description="Image Gallery Service",
    )

    # Add exception handlers
    add_exception_handlers(app)

    # CORS - Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add the routers
    app.include_router(image_router)
    app.include_router(user_router)

    # Disk-backed uploads are served straight from the upload dir
    if settings.storage_backend == "disk":
        os.makedirs(settings.upload_dir, exist_ok=True)
        app.mount(settings.uploads_url_prefix, StaticFiles(directory=settings.upload_dir), name="uploads")

    # Check Health
    @app.get("/")
    def read_root():
        """
            Default end point

        """
        return "Gallery Service is running."

    return app

# Initialize App
app = create_app()

if __name__ == "__main__":
    uvicorn.run("gallery.main:app", host="0.0.0.0", port=8000, reload=True)
