"""Content document storage for the Memory Site API.

This module isolates the ``content.json`` persistence logic from
``memorysite.api.main`` so route handlers can focus on HTTP concerns while the
file-backed store remains testable as a small unit.

The store is intentionally simple:

- all site state lives in a single ``content.json`` file
- there is no partial update API; every write replaces the whole document
- the first read seeds the document with default messages, colours, and
  timeline entries

Writes go to a temporary file in the same directory which then replaces
``content.json`` in one ``os.replace`` call, so readers never observe a
half-written document.  Read-modify-write cycles inside one process are
serialized by :meth:`ContentStore.update`; separate processes sharing the
same file can still overwrite each other's changes.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from memorysite.api.models import Content
from memorysite.core.errors import StorageError

logger = logging.getLogger(__name__)


def default_content(celebrant_name: str = "Bryan") -> Content:
    """Build the document a fresh site starts with.

    Args:
        celebrant_name: Name woven into the hero and message texts.

    Returns:
        Content with an empty gallery, no video, four text timeline entries,
        and the default messages and colour theme.
    """
    return Content.model_validate(
        {
            "photos": [],
            "video": None,
            "timeline": [
                {
                    "type": "text",
                    "title": "The Beginning",
                    "content": (
                        "That special moment when everything started. A beautiful "
                        "beginning to an incredible story filled with laughter, joy, "
                        "and endless possibilities."
                    ),
                },
                {
                    "type": "text",
                    "title": "First Adventure",
                    "content": (
                        "Our first big adventure together - exploring new places, "
                        "creating memories, and discovering what makes life truly "
                        "special."
                    ),
                },
                {
                    "type": "text",
                    "title": "Milestone Moment",
                    "content": (
                        "Celebrating achievements and supporting each other through "
                        "every step. These moments remind us of the strength we find "
                        "together."
                    ),
                },
                {
                    "type": "text",
                    "title": "Today & Beyond",
                    "content": (
                        "Here's to your birthday and all the amazing moments yet to "
                        "come. The best chapters of our story are still being written."
                    ),
                },
            ],
            "messages": {
                "heroTitle": f"Happy Birthday {celebrant_name}!",
                "heroSubtitle": "Celebrating another amazing year of your incredible journey",
                "galleryTitle": "Our Beautiful Memories",
                "gallerySubtitle": "A collection of moments that make life special",
                "timelineTitle": "Our Journey Together",
                "timelineSubtitle": "Milestones and memories that shaped our story",
                "messageTitle": f"Happy Birthday, {celebrant_name}! \U0001f382",
                "messageText1": (
                    "You light up every room with your incredible energy and "
                    "infectious smile."
                ),
                "messageText2": (
                    "Your kindness, humor, and zest for life inspire everyone around you."
                ),
                "messageText3": (
                    "May this new year bring you endless joy, exciting adventures, "
                    "and all the success you deserve."
                ),
                "messageHighlight": (
                    f"Here's to you, {celebrant_name}! May your special day be as "
                    "amazing as you are! \U0001f389❤️"
                ),
            },
            "colors": {
                "primaryColor": "#6366f1",
                "secondaryColor": "#8b5cf6",
                "accentColor": "#f59e0b",
                "heroTextColor": "#6366f1",
                "sectionTitleColor": "#6366f1",
                "messageTextColor": "#f59e0b",
                "timelineDotColor": "#6366f1",
                "timelineLineColor": "#6366f1",
                "timelineTextColor": "#f8fafc",
            },
        }
    )


class ContentStore:
    """File-backed persistence for the site's :class:`Content` document.

    Args:
        content_file: Path to ``content.json``.
        celebrant_name: Name used when seeding the default document.
    """

    def __init__(self, content_file: Path, celebrant_name: str = "Bryan"):
        self.content_file = Path(content_file)
        self.celebrant_name = celebrant_name
        self._lock = threading.RLock()

    def exists(self) -> bool:
        """Return whether a document has been persisted yet."""
        return self.content_file.exists()

    def read(self) -> Content:
        """Load the content document, seeding it on first use.

        Returns:
            The persisted document, or the freshly persisted defaults when no
            document existed.

        Raises:
            StorageError: If the file cannot be read, is not valid JSON, or
                does not match the content schema.
        """
        with self._lock:
            if not self.content_file.exists():
                content = default_content(self.celebrant_name)
                self.write(content)
                logger.info(f"Initialized content document at {self.content_file}")
                return content

            try:
                with open(self.content_file, encoding="utf-8") as handle:
                    raw = json.load(handle)
                return Content.model_validate(raw)
            except (OSError, ValueError) as e:
                # pydantic's ValidationError and JSONDecodeError are both ValueErrors.
                logger.error(f"Failed to read {self.content_file}: {e}")
                raise StorageError(f"Could not read content: {e}") from e

    def write(self, content: Content) -> None:
        """Persist the whole document, replacing the previous one.

        Args:
            content: The complete document to store.

        Raises:
            StorageError: If the temporary file cannot be written or moved
                into place.
        """
        payload = content.model_dump(mode="json")
        with self._lock:
            self.content_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_path: str | None = None
            try:
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self.content_file.parent,
                    prefix=".content-",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    tmp_path = handle.name
                    json.dump(payload, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.content_file)
            except OSError as e:
                if tmp_path and os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                logger.error(f"Failed to write {self.content_file}: {e}")
                raise StorageError(f"Could not save content: {e}") from e

    def update(
        self,
        mutator: Callable[[Content], Content | None],
        *,
        fallback_to_empty: bool = False,
    ) -> Content:
        """Run a read-modify-write cycle while holding the store lock.

        Args:
            mutator: Receives the current document and either mutates it in
                place (returning ``None``) or returns a replacement.
            fallback_to_empty: When the stored document is unreadable, start
                from an empty document instead of raising.

        Returns:
            The document that was written.

        Raises:
            StorageError: If reading fails and ``fallback_to_empty`` is
                ``False``, or if writing fails.
        """
        with self._lock:
            try:
                content = self.read()
            except StorageError:
                if not fallback_to_empty:
                    raise
                logger.warning("Content document unreadable; starting from an empty one")
                content = Content()

            result = mutator(content)
            if result is not None:
                content = result

            self.write(content)
            return content
