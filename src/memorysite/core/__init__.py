"""Core configuration and error types for the Memory Site service.

- **MemorySiteConfig**: Configuration management using Pydantic Settings
- **config**: Global configuration instance (loads from environment variables)
- **errors**: Error taxonomy shared by the store, the ingest pipeline, and the API
"""

from memorysite.core.config import MemorySiteConfig, config
from memorysite.core.errors import (
    MemorySiteError,
    NotFoundError,
    PayloadTooLargeError,
    StorageError,
    ValidationError,
)

__all__ = [
    "MemorySiteConfig",
    "config",
    "MemorySiteError",
    "NotFoundError",
    "PayloadTooLargeError",
    "StorageError",
    "ValidationError",
]
