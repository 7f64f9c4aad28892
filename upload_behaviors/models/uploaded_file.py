"""Uploaded file wrapper."""
import shutil
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO, Optional

from upload_behaviors.core.exceptions import StorageException
from upload_behaviors.utils.templating import split_extension


class UploadedFile:
    """
    A file received from a client, waiting to be attached to a record.
    
    Assign an instance to a model's upload attribute; the behavior writes it
    to disk after the record row is saved.
    """
    
    def __init__(
        self,
        filename: str,
        file: BinaryIO,
        content_type: Optional[str] = None
    ):
        """
        Args:
            filename: Client-side filename (any directory part is ignored)
            file: Readable binary stream with the file contents
            content_type: MIME type reported by the client
        """
        self.filename = filename
        self.file = file
        self.content_type = content_type
    
    @classmethod
    def from_upload_file(cls, upload) -> "UploadedFile":
        """Wrap a FastAPI/Starlette ``UploadFile``."""
        return cls(
            filename=upload.filename or "",
            file=upload.file,
            content_type=upload.content_type
        )
    
    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "UploadedFile":
        """Wrap a local file. The caller closes ``file`` when done."""
        path = Path(path)
        return cls(filename=path.name, file=open(path, 'rb'), content_type=content_type)
    
    @property
    def name(self) -> str:
        """Filename without any client-side directory."""
        # Browsers on Windows may send full paths
        return PureWindowsPath(PurePosixPath(self.filename).name).name
    
    @property
    def base_name(self) -> str:
        """Filename without its last extension."""
        return split_extension(self.name)[0]
    
    @property
    def extension(self) -> str:
        """Last extension, without the dot (empty if none)."""
        return split_extension(self.name)[1]
    
    @property
    def stored_name(self) -> str:
        """Value stored on the record until the file is written."""
        return self.name
    
    def save_as(self, path: Path) -> Path:
        """
        Copy the upload to ``path``. Parent directories must exist.
        
        Raises:
            StorageException: If the copy fails
        """
        try:
            if self.file.seekable():
                self.file.seek(0)
            with open(path, 'wb') as f:
                shutil.copyfileobj(self.file, f)
            return Path(path)
        except OSError as e:
            raise StorageException(f"Failed to save upload {path}: {e}")
    
    def __repr__(self) -> str:
        return f"<UploadedFile(filename='{self.filename}', content_type={self.content_type!r})>"
