"""Memory Site - content and media service for a personal-event memory site."""

__version__ = "0.1.0"

from memorysite.core.config import MemorySiteConfig, config

__all__ = [
    "MemorySiteConfig",
    "config",
]
