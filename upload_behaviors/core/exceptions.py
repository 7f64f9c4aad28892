"""Custom exceptions for upload behaviors."""


class UploadException(Exception):
    """Base exception for all upload-related errors."""
    
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class StorageException(UploadException):
    """Raised when file storage operations fail."""
    
    def __init__(self, message: str):
        super().__init__(f"Storage error: {message}", status_code=500)


class ImageProcessingException(UploadException):
    """Raised when thumbnail generation fails."""
    
    def __init__(self, message: str):
        super().__init__(f"Image processing error: {message}", status_code=500)


class MissingBehaviorException(UploadException):
    """Raised when a model has no upload behavior for an attribute."""
    
    def __init__(self, model: str, attribute: str):
        self.model = model
        self.attribute = attribute
        super().__init__(
            f"Missing behavior for attribute {attribute!r} on {model}",
            status_code=500
        )


class ConfigurationException(UploadException):
    """Raised when a behavior is configured with invalid options."""
    
    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}", status_code=500)
