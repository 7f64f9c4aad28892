"""Value objects passed to behaviors."""
from .uploaded_file import UploadedFile

__all__ = [
    "UploadedFile",
]
