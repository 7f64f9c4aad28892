"""Storage service for upload file operations."""
import logging
import os
from pathlib import Path
from typing import Optional

from upload_behaviors.core.config import Settings, settings as default_settings
from upload_behaviors.core.exceptions import StorageException
from upload_behaviors.models import UploadedFile
from upload_behaviors.utils.templating import absolute_path

logger = logging.getLogger(__name__)


class StorageService:
    """Service for managing files under the web root."""
    
    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize storage service with configured paths.
        
        Args:
            settings: Settings to read ``web_root`` and ``directory_mode`` from
        """
        settings = settings or default_settings
        self.web_root = settings.web_root
        self.directory_mode = settings.directory_mode
    
    def absolute(self, stored_path: str) -> Path:
        """
        Get the full path for a stored (web-root-relative) path.
        
        Args:
            stored_path: Path as stored on the record
            
        Returns:
            Absolute path under the web root
        """
        return absolute_path(self.web_root, stored_path)
    
    def ensure_parent(self, file_path: Path) -> Path:
        """
        Create the parent directory of ``file_path``.
        
        Raises:
            StorageException: If the directory cannot be created
        """
        try:
            file_path.parent.mkdir(mode=self.directory_mode, parents=True, exist_ok=True)
            return file_path.parent
        except OSError as e:
            raise StorageException(f"Failed to create directory {file_path.parent}: {e}")
    
    def save_upload(self, upload: UploadedFile, file_path: Path) -> Path:
        """
        Save an uploaded file.
        
        Args:
            upload: Uploaded file
            file_path: Destination path
            
        Returns:
            Path to saved file
            
        Raises:
            StorageException: If save fails
        """
        self.ensure_parent(file_path)
        upload.save_as(file_path)
        logger.debug(f"Saved upload {upload.name} to {file_path}")
        return file_path
    
    def delete_file(self, file_path: Path) -> bool:
        """
        Delete a file.
        
        Args:
            file_path: File path to delete
            
        Returns:
            True if deleted, False if file didn't exist
            
        Raises:
            StorageException: If deletion fails
        """
        try:
            os.unlink(file_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageException(f"Failed to delete file {file_path}: {e}")
        
        logger.debug(f"Deleted {file_path}")
        return True
    
    def file_exists(self, file_path: Path) -> bool:
        """
        Check if a file exists.
        
        Args:
            file_path: File path to check
            
        Returns:
            True if file exists, False otherwise
        """
        return file_path.exists() and file_path.is_file()
