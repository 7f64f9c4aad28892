"""Thumbnail service for generating resized image variants."""
import logging
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image as PILImage
from PIL import ImageOps

from upload_behaviors.core.config import Settings, settings as default_settings
from upload_behaviors.core.exceptions import ImageProcessingException
from upload_behaviors.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Formats that can't store an alpha channel or palette
_RGB_ONLY_FORMATS = {"JPEG"}


class ThumbnailService:
    """Service for thumbnail operations - crops and scales originals to a fixed box."""
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[StorageService] = None
    ):
        """
        Initialize thumbnail service.
        
        Args:
            settings: Settings for quality and upscaling defaults
            storage: Storage service used to create directories
        """
        settings = settings or default_settings
        self.storage = storage or StorageService(settings)
        self.quality = settings.thumbnail_quality
        self.resize_up = settings.thumbnail_resize_up
    
    def create_thumbnail(
        self,
        source_path: Path,
        thumb_path: Path,
        width: int,
        height: int,
        resize_up: Optional[bool] = None
    ) -> Tuple[int, int]:
        """
        Generate a thumbnail of ``source_path`` at ``thumb_path``.
        
        Args:
            source_path: Original image
            thumb_path: Destination; its extension picks the output format
            width: Target width
            height: Target height
            resize_up: Allow upscaling small originals (defaults to settings)
            
        Returns:
            (width, height) of the written thumbnail
            
        Raises:
            ImageProcessingException: If generation fails
        """
        if resize_up is None:
            resize_up = self.resize_up
        
        if not source_path.exists():
            raise ImageProcessingException(f"Original image not found: {source_path}")
        
        self.storage.ensure_parent(thumb_path)
        
        try:
            with PILImage.open(source_path) as img:
                image_format = self._output_format(thumb_path, img.format)
                thumb = self.adaptive_resize(img, width, height, resize_up)
                
                if image_format in _RGB_ONLY_FORMATS and thumb.mode not in ('RGB', 'L', 'CMYK'):
                    thumb = thumb.convert('RGB')
                
                save_options = {}
                if image_format in ("JPEG", "WEBP"):
                    save_options = {"quality": self.quality, "optimize": True}
                
                thumb.save(thumb_path, image_format, **save_options)
                size = thumb.size
        
        except (OSError, ValueError) as e:
            logger.error(f"Thumbnail generation failed for {source_path}: {e}")
            raise ImageProcessingException(f"Failed to generate thumbnail: {e}")
        
        logger.info(f"Created {size[0]}x{size[1]} thumbnail {thumb_path}")
        return size
    
    @staticmethod
    def adaptive_resize(
        img: PILImage.Image,
        width: int,
        height: int,
        resize_up: bool = False
    ) -> PILImage.Image:
        """
        Scale ``img`` to cover ``width`` x ``height`` and crop the overflow.
        
        Without ``resize_up`` an original smaller than the box is never
        enlarged; the box shrinks to fit it instead.
        
        Args:
            img: Source image
            width: Target width
            height: Target height
            resize_up: Allow enlarging small originals
            
        Returns:
            New image
        """
        width, height = ThumbnailService.target_size(img.size, width, height, resize_up)
        return ImageOps.fit(
            img,
            (width, height),
            PILImage.Resampling.LANCZOS,
            centering=(0.5, 0.5)
        )
    
    @staticmethod
    def target_size(
        original: Tuple[int, int],
        width: int,
        height: int,
        resize_up: bool = False
    ) -> Tuple[int, int]:
        """Box the thumbnail is fitted into."""
        if resize_up:
            return (width, height)
        
        original_width, original_height = original
        return (min(width, original_width), min(height, original_height))
    
    @staticmethod
    def _output_format(path: Path, fallback: Optional[str]) -> str:
        extension = path.suffix.lower()
        image_format = PILImage.registered_extensions().get(extension) or fallback
        if not image_format:
            raise ImageProcessingException(f"Unknown image format for {path}")
        return image_format
