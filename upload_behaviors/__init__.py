"""Upload behaviors: attach stored files and thumbnails to SQLAlchemy models."""
from .behaviors import FileUploadBehavior, ImageUploadBehavior
from .models import UploadedFile

__version__ = "1.0.0"

__all__ = [
    "FileUploadBehavior",
    "ImageUploadBehavior",
    "UploadedFile",
]
