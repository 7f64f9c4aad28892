"""File upload behavior.

Attach the behavior to a mapped model, name the upload column and describe
where files go::

    class Post(Base):
        __tablename__ = "posts"
        id = Column(Integer, primary_key=True)
        title = Column(String(200))
        attachment = Column(Text)

    FileUploadBehavior(
        attribute="attachment",
        file_path="/uploads/[[model]]/[[attribute]]/",
        file_name="{id}-{title}",
    ).attach(Post)

    post.attachment = UploadedFile.from_upload_file(upload)
    await session.commit()   # file written, post.attachment holds its path
"""
import logging
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import and_, event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm.attributes import set_committed_value

from upload_behaviors.core.config import Settings
from upload_behaviors.core.exceptions import ConfigurationException, MissingBehaviorException
from upload_behaviors.models import UploadedFile
from upload_behaviors.services.storage_service import StorageService
from upload_behaviors.utils import templating

logger = logging.getLogger(__name__)

# model class -> {attribute: behavior}
_registry: "weakref.WeakKeyDictionary[type, Dict[str, FileUploadBehavior]]" = weakref.WeakKeyDictionary()


class FileUploadBehavior:
    """Stores an uploaded file when its record is saved and removes it on delete."""
    
    EVENT_AFTER_FILE_SAVE = "after_file_save"
    
    attribute = "upload"
    file_name = "{id}"
    file_path = "/uploads/[[model]]/[[attribute]]/"
    
    def __init__(
        self,
        attribute: Optional[str] = None,
        file_name: Optional[str] = None,
        file_path: Optional[str] = None,
        settings: Optional[Settings] = None,
        storage: Optional[StorageService] = None
    ):
        """
        Args:
            attribute: Name of the column which holds the attachment
            file_name: Name template, ``{column}`` tokens are replaced
            file_path: Directory template, ``[[model]]``/``[[attribute]]``
                tokens are replaced
            settings: Settings (defaults to the module singleton)
            storage: Storage service (built from ``settings`` when omitted)
        """
        if attribute is not None:
            self.attribute = attribute
        if file_name is not None:
            self.file_name = file_name
        if file_path is not None:
            self.file_path = file_path
        if not self.attribute:
            raise ConfigurationException("attribute must not be empty")
        
        self.settings = settings
        self._storage = storage
        self.model: Optional[type] = None
        
        self._pending: "weakref.WeakKeyDictionary[Any, UploadedFile]" = weakref.WeakKeyDictionary()
        self._suspended: "weakref.WeakKeyDictionary[Any, int]" = weakref.WeakKeyDictionary()
        self._listeners: Dict[str, List[Callable[[Any], None]]] = {
            self.EVENT_AFTER_FILE_SAVE: []
        }
    
    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService(self.settings)
        return self._storage
    
    def configure(self, settings: Settings) -> None:
        """Switch to other settings, e.g. a different web root."""
        self.settings = settings
        self._storage = None
    
    # Registration
    
    def attach(self, model: type) -> "FileUploadBehavior":
        """
        Register the behavior on a mapped model and subscribe to its events.
        
        Args:
            model: Mapped model class
            
        Returns:
            This behavior
            
        Raises:
            ConfigurationException: If the attribute is not a column of the
                model or another behavior already handles it
        """
        mapper = sa_inspect(model)
        if self.attribute not in mapper.column_attrs:
            raise ConfigurationException(
                f"{model.__name__} has no column attribute {self.attribute!r}"
            )
        if self.model is not None:
            raise ConfigurationException(
                f"behavior for {self.attribute!r} is already attached to {self.model.__name__}"
            )
        
        behaviors = _registry.setdefault(model, {})
        if self.attribute in behaviors:
            raise ConfigurationException(
                f"{model.__name__} already has a behavior for {self.attribute!r}"
            )
        behaviors[self.attribute] = self
        self.model = model
        
        event.listen(
            getattr(model, self.attribute),
            "set",
            self._on_set,
            active_history=True,
            propagate=True
        )
        event.listen(model, "before_insert", self._on_before_save, propagate=True)
        event.listen(model, "before_update", self._on_before_save, propagate=True)
        event.listen(model, "after_insert", self._on_after_save, propagate=True)
        event.listen(model, "after_update", self._on_after_save, propagate=True)
        event.listen(model, "before_delete", self._on_before_delete, propagate=True)
        
        logger.debug(f"Attached {type(self).__name__} to {model.__name__}.{self.attribute}")
        return self
    
    @classmethod
    def get_instance(cls, model: Any, attribute: str) -> "FileUploadBehavior":
        """
        Return the behavior of this class registered for ``attribute``.
        
        Args:
            model: Model class or record
            attribute: Upload attribute name
            
        Raises:
            MissingBehaviorException: If no such behavior is registered
        """
        model_cls = model if isinstance(model, type) else type(model)
        for klass in model_cls.__mro__:
            behavior = _registry.get(klass, {}).get(attribute)
            if isinstance(behavior, cls):
                return behavior
        
        raise MissingBehaviorException(model_cls.__name__, attribute)
    
    def add_file_save_listener(self, listener: Callable[[Any], None]) -> None:
        """Call ``listener(record)`` each time an upload has been stored."""
        self._listeners[self.EVENT_AFTER_FILE_SAVE].append(listener)
    
    def remove_file_save_listener(self, listener: Callable[[Any], None]) -> None:
        self._listeners[self.EVENT_AFTER_FILE_SAVE].remove(listener)
    
    def trigger(self, event_name: str, record: Any) -> None:
        for listener in self._listeners.get(event_name, []):
            listener(record)
    
    # Re-entrancy guard
    
    @contextmanager
    def events_suspended(self, record: Any) -> Iterator[None]:
        """Make every lifecycle hook a no-op for ``record`` inside the block."""
        self._suspended[record] = self._suspended.get(record, 0) + 1
        try:
            yield
        finally:
            depth = self._suspended.pop(record) - 1
            if depth:
                self._suspended[record] = depth
    
    def is_active(self, record: Any) -> bool:
        return record not in self._suspended
    
    def pending_upload(self, record: Any) -> Optional[UploadedFile]:
        return self._pending.get(record)
    
    # Lifecycle hooks
    
    def before_validate(self, record: Any) -> None:
        """Capture an assigned upload, or keep the stored value otherwise."""
        if not self.is_active(record):
            return
        
        value = getattr(record, self.attribute)
        if isinstance(value, UploadedFile):
            self._pending[record] = value
            return
        
        # An upload replaced before saving is withdrawn
        self._pending.pop(record, None)
        if not self._is_new(record):
            # The column only changes through an upload
            history = sa_inspect(record).attrs[self.attribute].history
            if history.deleted:
                setattr(record, self.attribute, history.deleted[0])
    
    def before_save(self, record: Any) -> None:
        """Drop the files of the previous upload and store the client filename."""
        if not self.is_active(record):
            return
        
        upload = self._pending.get(record)
        if upload is None:
            return
        
        if not self._is_new(record):
            self.clean_files(record, self._old_values(record))
        setattr(record, self.attribute, upload.stored_name)
    
    def after_save(self, record: Any, connection) -> None:
        """
        Write the pending upload and persist its resolved path.
        
        Args:
            record: Saved record
            connection: Connection the record row was written with
            
        Raises:
            StorageException: If the file cannot be written
        """
        if not self.is_active(record):
            return
        
        upload = self._pending.pop(record, None)
        if upload is None:
            return
        
        path = self.resolve_path(record)
        target = self.storage.absolute(path)
        self.storage.save_upload(upload, target)
        logger.debug(f"Stored {upload.name} for {type(record).__name__}.{self.attribute} at {path}")
        
        with self.events_suspended(record):
            self._persist_path(record, path, connection)
        
        self.trigger(self.EVENT_AFTER_FILE_SAVE, record)
    
    def before_delete(self, record: Any) -> None:
        if not self.is_active(record):
            return
        self.clean_files(record)
    
    # Paths
    
    def resolve_file_name(self, record: Any, values: Optional[Mapping[str, Any]] = None) -> str:
        """File name (without extension) for ``record``."""
        if values is None:
            values = self._values(record)
        return templating.resolve_file_name(self.file_name, values)
    
    def resolve_path(self, record: Any, values: Optional[Mapping[str, Any]] = None) -> str:
        """
        Web-root-relative path of the upload for ``record``.
        
        Args:
            record: Record owning the upload
            values: Column values to resolve with (defaults to the record's
                current values)
        """
        if values is None:
            values = self._values(record)
        
        stored = values.get(self.attribute)
        if isinstance(stored, UploadedFile):
            stored = stored.stored_name
        
        return templating.resolve_path(
            self.file_path,
            self.file_name,
            type(record).__name__,
            self.attribute,
            values,
            stored or ""
        )
    
    def get_uploaded_file_url(self, record: Any, attribute: str) -> str:
        """Stored path of the upload held by ``attribute`` of ``record``."""
        behavior = type(self).get_instance(record, attribute)
        return behavior.resolve_path(record)
    
    def clean_files(self, record: Any, values: Optional[Mapping[str, Any]] = None) -> List[str]:
        """
        Remove files associated with the attribute.
        
        Args:
            record: Record owning the upload
            values: Column values describing the state whose files are removed
            
        Returns:
            Paths of the files that were deleted
        """
        if values is None:
            values = self._values(record)
        if not self._has_stored_file(values):
            return []
        
        path = self.resolve_path(record, values)
        if self.storage.delete_file(self.storage.absolute(path)):
            return [path]
        return []
    
    # Internals
    
    def _has_stored_file(self, values: Mapping[str, Any]) -> bool:
        stored = values.get(self.attribute)
        return bool(stored) and not isinstance(stored, UploadedFile)
    
    def _is_new(self, record: Any) -> bool:
        return not sa_inspect(record).has_identity
    
    def _values(self, record: Any) -> Dict[str, Any]:
        mapper = sa_inspect(record).mapper
        return {attr.key: getattr(record, attr.key) for attr in mapper.column_attrs}
    
    def _old_values(self, record: Any) -> Dict[str, Any]:
        """Column values as they were before the pending changes."""
        state = sa_inspect(record)
        values = {}
        for attr in state.mapper.column_attrs:
            history = state.attrs[attr.key].history
            if history.deleted:
                values[attr.key] = history.deleted[0]
            else:
                values[attr.key] = getattr(record, attr.key)
        return values
    
    def _persist_path(self, record: Any, path: str, connection) -> None:
        """Write ``path`` into the attribute column without a new flush."""
        mapper = sa_inspect(record).mapper
        column = mapper.get_property(self.attribute).columns[0]
        table = column.table
        
        criteria = [
            pk == getattr(record, mapper.get_property_by_column(pk).key)
            for pk in table.primary_key.columns
        ]
        connection.execute(
            table.update().where(and_(*criteria)).values({column.name: path})
        )
        set_committed_value(record, self.attribute, path)
    
    # SQLAlchemy event adapters
    
    def _on_set(self, target, value, oldvalue, initiator):
        if isinstance(value, UploadedFile) and self.is_active(target):
            self._pending[target] = value
        return value
    
    def _on_before_save(self, mapper, connection, target):
        self.before_validate(target)
        self.before_save(target)
    
    def _on_after_save(self, mapper, connection, target):
        self.after_save(target, connection)
    
    def _on_before_delete(self, mapper, connection, target):
        self.before_delete(target)
