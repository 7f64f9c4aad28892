"""Logging setup."""
import logging
import sys
from typing import Optional

from .config import Settings, settings as default_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure root logging from settings.
    
    Logs go to stdout; a file handler is added when ``log_file`` is set.
    
    Args:
        settings: Settings to read level and log file from (defaults to the
            module singleton)
    """
    settings = settings or default_settings
    
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
