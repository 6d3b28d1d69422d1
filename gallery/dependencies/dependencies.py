from fastapi import Request
from gallery.storage.base import BlobStore
from gallery.image_service.repository import ImageRepository
from gallery.users.directory import UserDirectory

def get_blob_store(request: Request) -> BlobStore:
    """Dependency provider for the configured BlobStore"""
    return request.app.state.blobs

def get_image_repository(request: Request) -> ImageRepository:
    """Dependency provider for ImageRepository"""
    return request.app.state.images

def get_user_directory(request: Request) -> UserDirectory:
    """Dependency provider for UserDirectory"""
    return request.app.state.users
