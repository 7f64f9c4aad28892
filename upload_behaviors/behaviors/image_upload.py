"""Image upload behavior with thumbnail profiles.

Works like :class:`FileUploadBehavior` and additionally writes one resized
copy per profile into a sub-directory named after the profile::

    ImageUploadBehavior(
        attribute="image",
        thumbs={"thumb": {"width": 400, "height": 300}},
        file_path="/images/[[model]]/",
    ).attach(Photo)

    # /images/photo/12.jpg -> /images/photo/thumb/12.jpg
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from upload_behaviors.core.exceptions import ConfigurationException
from upload_behaviors.services.thumbnail_service import ThumbnailService
from upload_behaviors.utils.templating import thumb_path

from .file_upload import FileUploadBehavior

logger = logging.getLogger(__name__)


class ImageUploadBehavior(FileUploadBehavior):
    """Upload behavior that also keeps thumbnails of the stored image."""
    
    attribute = "image"
    file_path = "/images/[[model]]/[[attribute]]/"
    
    # Thumbnail profiles: name -> {"width", "height"[, "resize_up"]}
    thumbs = {
        "thumb": {"width": 200, "height": 150},
    }
    
    def __init__(
        self,
        attribute: Optional[str] = None,
        thumbs: Optional[Dict[str, Dict[str, Any]]] = None,
        create_thumbs_on_save: bool = True,
        create_thumbs_on_request: bool = False,
        thumbnail_service: Optional[ThumbnailService] = None,
        **kwargs
    ):
        """
        Args:
            attribute: Name of the column which holds the image
            thumbs: Thumbnail profiles
            create_thumbs_on_save: Create thumbnails right after the upload
                is stored
            create_thumbs_on_request: Create missing thumbnails when their
                URL is requested
            thumbnail_service: Service used to resize images
            **kwargs: :class:`FileUploadBehavior` options
        """
        super().__init__(attribute=attribute, **kwargs)
        self.thumbs = self._check_profiles(self.thumbs if thumbs is None else thumbs)
        self.create_thumbs_on_save = create_thumbs_on_save
        self.create_thumbs_on_request = create_thumbs_on_request
        self._thumbnail_service = thumbnail_service
        
        self.add_file_save_listener(self.after_file_save)
    
    @property
    def thumbnail_service(self) -> ThumbnailService:
        if self._thumbnail_service is None:
            self._thumbnail_service = ThumbnailService(self.settings, self.storage)
        return self._thumbnail_service
    
    def configure(self, settings) -> None:
        super().configure(settings)
        self._thumbnail_service = None
    
    @staticmethod
    def _check_profiles(thumbs: Mapping[str, Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
        profiles = {}
        for profile, config in thumbs.items():
            if not profile or '/' in profile:
                raise ConfigurationException(f"invalid thumbnail profile name {profile!r}")
            for key in ("width", "height"):
                value = config.get(key)
                if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                    raise ConfigurationException(
                        f"thumbnail profile {profile!r} needs a positive integer {key}"
                    )
            profiles[profile] = dict(config)
        return profiles
    
    def clean_files(self, record: Any, values: Optional[Mapping[str, Any]] = None) -> List[str]:
        """Remove the stored image and every profile's thumbnail."""
        if values is None:
            values = self._values(record)
        
        deleted = super().clean_files(record, values)
        if not self._has_stored_file(values):
            return deleted
        
        for profile in self.thumbs:
            path = self.resolve_thumb_path(record, profile, values)
            if self.storage.delete_file(self.storage.absolute(path)):
                deleted.append(path)
        return deleted
    
    def resolve_thumb_path(
        self,
        record: Any,
        profile: str,
        values: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Stored path of the ``profile`` thumbnail for ``record``."""
        return thumb_path(self.resolve_path(record, values), profile)
    
    def get_thumb_file_url(self, record: Any, attribute: str, profile: str = "thumb") -> str:
        """
        Path of a thumbnail of the image held by ``attribute``.
        
        Missing thumbnails are created first when the behavior registered for
        ``attribute`` has ``create_thumbs_on_request`` set.
        """
        behavior = type(self).get_instance(record, attribute)
        if behavior.create_thumbs_on_request:
            behavior.create_thumbs(record)
        return behavior.resolve_thumb_path(record, profile)
    
    def after_file_save(self, record: Any) -> None:
        if self.create_thumbs_on_save:
            self.create_thumbs(record)
    
    def create_thumbs(self, record: Any) -> List[str]:
        """
        Create the thumbnails that don't exist yet.
        
        Returns:
            Stored paths of the thumbnails that were created
            
        Raises:
            ImageProcessingException: If an image can't be resized
        """
        source = self.storage.absolute(self.resolve_path(record))
        created = []
        for profile, config in self.thumbs.items():
            path = self.resolve_thumb_path(record, profile)
            target = self.storage.absolute(path)
            if self.storage.file_exists(target):
                continue
            
            self.thumbnail_service.create_thumbnail(
                source,
                target,
                config["width"],
                config["height"],
                resize_up=config.get("resize_up")
            )
            created.append(path)
        
        if created:
            logger.debug(f"Created thumbnails {created} for {type(record).__name__}")
        return created
