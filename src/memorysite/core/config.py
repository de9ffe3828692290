"""Configuration management for the Memory Site service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the MEMORYSITE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (MEMORYSITE_* prefix)
2. .env file in the project root
3. Default values defined in MemorySiteConfig

Example .env file:
    MEMORYSITE_SERVER_PORT=3001
    MEMORYSITE_UPLOAD_MAX_SIZE=104857600
    MEMORYSITE_DATA_DIR=data
    MEMORYSITE_UPLOADS_DIR=public/uploads

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from memorysite.core.config import config

    print(config.content_file)
    print(config.photos_dir)

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- data_dir: Holds ``content.json``
- uploads_dir/photos: Uploaded photos and their optimized variants
- uploads_dir/videos: The site video
- uploads_dir/timeline: Timeline images and videos
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from memorysite.api.models import MAX_PHOTOS


class MemorySiteConfig(BaseSettings):
    """Main configuration for the Memory Site service.

    Values are loaded from environment variables with the MEMORYSITE_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Listening port (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level configured by ``main()``

    Upload Settings:
        upload_max_size : int
            Largest accepted single upload, in bytes
        max_photos : int
            Ceiling on the number of gallery photos (at most 30, the
            most a stored document may hold)

    Paths:
        data_dir : Path
            Directory holding the content document
        uploads_dir : Path
            Root of the photos/videos/timeline media directories
        templates_dir : Path
            Directory holding ``index.html`` and ``admin.html``

    Content:
        celebrant_name : str
            Name used in the seeded default messages

    Notes
    -----
    - All data and upload directories are created automatically
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEMORYSITE_",
        case_sensitive=False,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=3001,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level used when the server is launched via main()",
    )

    # Upload limits
    upload_max_size: int = Field(
        default=100 * 1024 * 1024,
        description="Maximum size of a single uploaded file in bytes",
        gt=0,
    )
    max_photos: int = Field(
        default=MAX_PHOTOS,
        description="Maximum number of photos in the gallery",
        ge=1,
        le=MAX_PHOTOS,
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding content.json",
    )
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Root directory for uploaded media",
    )
    templates_dir: Path = Field(
        default=Path("templates"),
        description="Directory holding index.html and admin.html",
    )

    # Seeded content
    celebrant_name: str = Field(
        default="Bryan",
        description="Name used in the default hero and message texts",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.photos_dir.mkdir(parents=True, exist_ok=True)
        self.videos_dir.mkdir(parents=True, exist_ok=True)
        self.timeline_dir.mkdir(parents=True, exist_ok=True)

    @property
    def content_file(self) -> Path:
        """Path to the persisted content document."""
        return self.data_dir / "content.json"

    @property
    def photos_dir(self) -> Path:
        return self.uploads_dir / "photos"

    @property
    def videos_dir(self) -> Path:
        return self.uploads_dir / "videos"

    @property
    def timeline_dir(self) -> Path:
        return self.uploads_dir / "timeline"


# Global configuration instance
# Loads values from environment variables (MEMORYSITE_* prefix) and .env file.
config = MemorySiteConfig()
