"""File and image services used by the behaviors."""
from .storage_service import StorageService
from .thumbnail_service import ThumbnailService

__all__ = [
    "StorageService",
    "ThumbnailService",
]
