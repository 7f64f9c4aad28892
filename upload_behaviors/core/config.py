"""Application configuration management."""
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Upload settings loaded from environment variables."""
    
    # Storage (stored paths are relative to this directory)
    web_root: Path = Field(default=Path("web"), description="Root directory uploads are written under")
    directory_mode: int = Field(default=0o777, description="Mode for newly created upload directories")
    
    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./uploads.db",
        description="SQLAlchemy async connection URL"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    
    # Thumbnails
    thumbnail_quality: int = Field(default=85, description="JPEG quality (1-100)")
    thumbnail_resize_up: bool = Field(
        default=False,
        description="Upscale originals smaller than a thumbnail profile"
    )
    
    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Log file path")
    
    model_config = SettingsConfigDict(
        env_prefix="UPLOADS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    @field_validator("thumbnail_quality")
    @classmethod
    def check_quality(cls, v):
        """JPEG quality must stay within Pillow's accepted range."""
        if not 1 <= v <= 100:
            raise ValueError("thumbnail_quality must be between 1 and 100")
        return v
    
    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()
    
    def __init__(self, **kwargs):
        """Initialize settings and resolve all paths."""
        super().__init__(**kwargs)
        self.web_root = self.web_root.resolve()
        
        if self.log_file:
            self.log_file = self.log_file.resolve()
    
    def ensure_directories_exist(self):
        """Create the web root (and log directory) if they don't exist."""
        self.web_root.mkdir(parents=True, exist_ok=True)
        
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)


# Singleton instance, read from the environment / .env file.
# Behaviors accept their own Settings, so tests never need to patch this.
settings = Settings()
