"""Lifecycle behaviors for mapped models."""
from .file_upload import FileUploadBehavior
from .image_upload import ImageUploadBehavior

__all__ = [
    "FileUploadBehavior",
    "ImageUploadBehavior",
]
