"""Media ingest pipeline for uploaded photos, videos, and timeline media.

Uploads are classified by their declared MIME type only; file contents are
not sniffed.  Each category has its own directory under the uploads root:

========  ==============================  ==================================
Category  Directory                       Stored files
========  ==============================  ==================================
Photos    ``uploads/photos``              ``<name>`` and ``opt-<name>``
Video     ``uploads/videos``              ``<name>``
Timeline  ``uploads/timeline``            ``timeline-<name>`` and ``<name>``
========  ==============================  ==================================

``<name>`` is generated as ``<epoch-millis>-<random><original extension>``.
Optimized variants are produced with Pillow: the image is cropped to fill the
target box (never upscaled) and re-encoded as quality-85 JPEG.  The box sizes
and quality are fixed policy constants.

Photo uploads record their metadata in the :class:`ContentStore`.  Timeline
uploads only return the stored filename; the admin UI attaches it to the
event and saves the whole document itself.
"""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from memorysite.api.content_store import ContentStore
from memorysite.api.models import MAX_PHOTOS, Content, Photo
from memorysite.core.config import MemorySiteConfig
from memorysite.core.errors import (
    PayloadTooLargeError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PHOTO_SIZE = (800, 600)
TIMELINE_IMAGE_SIZE = (400, 300)
JPEG_QUALITY = 85
OPTIMIZED_PREFIX = "opt-"
TIMELINE_PREFIX = "timeline-"

_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


@dataclass
class IncomingFile:
    """An uploaded file as received from the HTTP layer.

    Attributes:
        data: Raw file bytes.
        content_type: MIME type declared by the client.
        filename: Client-side filename, used only for its extension.
    """

    data: bytes
    content_type: str
    filename: str = ""


def generate_filename(original_name: str) -> str:
    """Create a unique storage name that keeps the upload's extension.

    Args:
        original_name: Client-side filename (may include directories).

    Returns:
        Name of the form ``<epoch-millis>-<random 0..1e9><ext>``.  Extensions
        that are not short alphanumeric strings are dropped.
    """
    suffix = Path(original_name.replace("\\", "/")).suffix
    if not _EXTENSION_RE.match(suffix):
        suffix = ""
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"


def today_label() -> str:
    """Return today's date as ``M/D/YYYY`` (the default photo date)."""
    today = date.today()
    return f"{today.month}/{today.day}/{today.year}"


def is_safe_filename(filename: str) -> bool:
    """Return whether *filename* names a plain file with no directory parts."""
    return bool(filename) and filename not in (".", "..") and not re.search(r"[/\\\x00]", filename)


def optimize_image(source: Path, target: Path, size: tuple[int, int]) -> None:
    """Write a cropped, recompressed JPEG variant of *source* to *target*.

    The image is scaled and centre-cropped to fill ``size``.  Images smaller
    than the box along either axis are not enlarged; the box shrinks to the
    source dimension on that axis instead.

    Args:
        source: Path of the uploaded original.
        target: Path for the optimized variant.
        size: ``(width, height)`` bounding box.

    Raises:
        ValidationError: If the source cannot be decoded as an image.
        StorageError: If the variant cannot be written.
    """
    try:
        with Image.open(source) as opened:
            opened.load()
            image = ImageOps.exif_transpose(opened)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        # Truncated or malformed files surface as SyntaxError or ValueError
        # from some Pillow decoders.
        raise ValidationError(f"Could not process image {source.name}: {e}") from e

    box = (min(size[0], image.width), min(size[1], image.height))
    fitted = ImageOps.fit(image, box, method=Image.Resampling.LANCZOS)
    if fitted.mode not in ("RGB", "L"):
        fitted = fitted.convert("RGB")

    try:
        fitted.save(target, format="JPEG", quality=JPEG_QUALITY)
    except OSError as e:
        raise StorageError(f"Could not write {target.name}: {e}") from e


def _write_bytes(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as e:
        raise StorageError(f"Could not store {path.name}: {e}") from e


def _remove_quietly(path: Path) -> None:
    """Delete *path* if it exists, logging instead of raising on failure."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")


class MediaIngest:
    """Accept uploads, store them per category, and derive image variants.

    Args:
        store: Content store that receives photo and video metadata.
        photos_dir: Directory for photo originals and optimized variants.
        videos_dir: Directory for the site video.
        timeline_dir: Directory for timeline images and videos.
        upload_max_size: Largest accepted file, in bytes.
        max_photos: Gallery photo ceiling.
    """

    def __init__(
        self,
        store: ContentStore,
        photos_dir: Path,
        videos_dir: Path,
        timeline_dir: Path,
        *,
        upload_max_size: int = 100 * 1024 * 1024,
        max_photos: int = MAX_PHOTOS,
    ):
        if not 1 <= max_photos <= MAX_PHOTOS:
            raise ValueError(f"max_photos must be between 1 and {MAX_PHOTOS}")
        self.store = store
        self.photos_dir = Path(photos_dir)
        self.videos_dir = Path(videos_dir)
        self.timeline_dir = Path(timeline_dir)
        self.upload_max_size = upload_max_size
        self.max_photos = max_photos

        for directory in (self.photos_dir, self.videos_dir, self.timeline_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: MemorySiteConfig, store: ContentStore) -> MediaIngest:
        """Build a pipeline using the directories and limits from *config*."""
        return cls(
            store,
            config.photos_dir,
            config.videos_dir,
            config.timeline_dir,
            upload_max_size=config.upload_max_size,
            max_photos=config.max_photos,
        )

    # ------------------------------------------------------------------
    # Validation helpers.
    # ------------------------------------------------------------------

    def _check_upload(self, upload: IncomingFile, kind: str) -> None:
        """Reject uploads with the wrong MIME family or above the size ceiling."""
        if not (upload.content_type or "").startswith(f"{kind}/"):
            logger.warning(
                f"Rejected {upload.filename or 'upload'}: "
                f"{upload.content_type!r} is not an {kind} type"
            )
            raise ValidationError(
                f"Only {kind} files are allowed ({upload.filename or 'upload'} "
                f"is {upload.content_type or 'untyped'})"
            )
        if len(upload.data) > self.upload_max_size:
            raise PayloadTooLargeError(
                f"{upload.filename or 'Upload'} exceeds the "
                f"{self.upload_max_size} byte upload limit"
            )

    def ensure_photo_capacity(self, incoming: int) -> None:
        """Reject a photo upload that would push the gallery past the ceiling.

        An unreadable document counts as an empty gallery, matching the
        fallback used when the photos are recorded.

        Args:
            incoming: Number of photos in the pending upload.

        Raises:
            ValidationError: If existing plus incoming photos exceed
                ``max_photos``.
        """
        try:
            existing = len(self.store.read().photos)
        except StorageError:
            existing = 0
        self._check_capacity(existing, incoming)

    def _check_capacity(self, existing: int, incoming: int) -> None:
        if existing + incoming > self.max_photos:
            logger.warning(
                f"Rejected photo upload: {existing} existing + {incoming} new "
                f"> {self.max_photos}"
            )
            raise ValidationError(f"Maximum {self.max_photos} photos allowed")

    # ------------------------------------------------------------------
    # Photos.
    # ------------------------------------------------------------------

    def ingest_photos(
        self,
        files: Sequence[IncomingFile],
        captions: Sequence[str | None] = (),
        dates: Sequence[str | None] = (),
    ) -> list[Photo]:
        """Store gallery photos, derive their optimized variants, and record them.

        All files are validated before any is written.  If processing fails
        part-way, every file written by this call is removed again and no
        records are added.

        Args:
            files: Uploaded images.
            captions: Optional caption per file index.
            dates: Optional date label per file index; defaults to today.

        Returns:
            The new :class:`Photo` records, in upload order.

        Raises:
            ValidationError: If no files were given, a file is not an image,
                is too large, or cannot be decoded, or the gallery
                would exceed ``max_photos``.
            StorageError: If a file or the content document cannot be written.
        """
        if not files:
            raise ValidationError("No files uploaded")
        for upload in files:
            self._check_upload(upload, "image")

        written: list[Path] = []
        photos: list[Photo] = []
        try:
            for index, upload in enumerate(files):
                filename = generate_filename(upload.filename)
                optimized_name = OPTIMIZED_PREFIX + filename

                original_path = self.photos_dir / filename
                _write_bytes(original_path, upload.data)
                written.append(original_path)

                optimized_path = self.photos_dir / optimized_name
                written.append(optimized_path)
                optimize_image(original_path, optimized_path, PHOTO_SIZE)

                caption = captions[index] if index < len(captions) else None
                label = dates[index] if index < len(dates) else None
                photos.append(
                    Photo(
                        original=filename,
                        optimized=optimized_name,
                        caption=caption or "",
                        date=label or today_label(),
                    )
                )

            def _append(content: Content) -> None:
                # Re-checked under the store lock; concurrent uploads may have
                # landed since ensure_photo_capacity ran.
                self._check_capacity(len(content.photos), len(photos))
                content.photos.extend(photos)

            self.store.update(_append, fallback_to_empty=True)
        except Exception:
            for path in written:
                _remove_quietly(path)
            raise

        logger.info(f"Stored {len(photos)} photo(s) in {self.photos_dir}")
        return photos

    def delete_photo(self, filename: str) -> None:
        """Remove a photo file and every record that references it.

        Absent files and records are not errors, so repeating the call is a
        no-op.  When a record matches, its companion file (the original of
        an optimized variant, or vice versa) is removed as well.

        Args:
            filename: ``optimized`` (or ``original``) filename of the photo.

        Raises:
            ValidationError: If *filename* contains directory components.
            StorageError: If the content document cannot be read or written.
        """
        if not is_safe_filename(filename):
            raise ValidationError(f"Invalid filename: {filename!r}")

        path = self.photos_dir / filename
        if path.exists():
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Could not delete {filename}: {e}") from e

        removed: list[Photo] = []

        def _drop(content: Content) -> None:
            kept = []
            for photo in content.photos:
                if filename in (photo.original, photo.optimized):
                    removed.append(photo)
                else:
                    kept.append(photo)
            content.photos = kept

        self.store.update(_drop)

        for photo in removed:
            for companion in (photo.original, photo.optimized):
                if companion != filename and is_safe_filename(companion):
                    _remove_quietly(self.photos_dir / companion)

        logger.info(f"Deleted photo {filename} ({len(removed)} record(s) removed)")

    # ------------------------------------------------------------------
    # Site video.
    # ------------------------------------------------------------------

    def ingest_video(self, upload: IncomingFile) -> str:
        """Store the site video and make it the current one.

        The previously referenced video file is deleted from disk.

        Args:
            upload: Uploaded video.

        Returns:
            The stored filename.

        Raises:
            ValidationError: If the file is not a video or is too large.
            StorageError: If the file or the content document cannot be written.
        """
        self._check_upload(upload, "video")

        filename = generate_filename(upload.filename)
        path = self.videos_dir / filename
        _write_bytes(path, upload.data)

        replaced: list[str] = []

        def _set_video(content: Content) -> None:
            if content.video and content.video != filename:
                replaced.append(content.video)
            content.video = filename

        try:
            self.store.update(_set_video, fallback_to_empty=True)
        except Exception:
            _remove_quietly(path)
            raise

        for previous in replaced:
            if is_safe_filename(previous):
                _remove_quietly(self.videos_dir / previous)

        logger.info(f"Stored site video {filename}")
        return filename

    # ------------------------------------------------------------------
    # Timeline media.
    # ------------------------------------------------------------------

    @staticmethod
    def _check_event_index(event_index: int | None) -> None:
        if event_index is not None and event_index < 0:
            raise ValidationError(f"Invalid timeline event index: {event_index}")

    def ingest_timeline_image(self, event_index: int | None, upload: IncomingFile) -> str:
        """Store a resized image for a timeline event.

        Only the optimized 400x300 variant is kept; the uploaded original is
        removed once the variant has been written (or has failed).

        Args:
            event_index: Index of the timeline event the image belongs to.
            upload: Uploaded image.

        Returns:
            Filename of the stored ``timeline-`` variant.

        Raises:
            ValidationError: If the file is not a decodable image, is too
                large, or the index is negative.
            StorageError: If the variant cannot be written.
        """
        self._check_event_index(event_index)
        self._check_upload(upload, "image")

        filename = generate_filename(upload.filename)
        optimized_name = TIMELINE_PREFIX + filename
        original_path = self.timeline_dir / filename
        optimized_path = self.timeline_dir / optimized_name

        _write_bytes(original_path, upload.data)
        try:
            optimize_image(original_path, optimized_path, TIMELINE_IMAGE_SIZE)
        except Exception:
            _remove_quietly(optimized_path)
            raise
        finally:
            _remove_quietly(original_path)

        logger.info(f"Stored timeline image {optimized_name} for event {event_index}")
        return optimized_name

    def ingest_timeline_video(self, event_index: int | None, upload: IncomingFile) -> str:
        """Store a video for a timeline event without transcoding.

        Args:
            event_index: Index of the timeline event the video belongs to.
            upload: Uploaded video.

        Returns:
            The stored filename.

        Raises:
            ValidationError: If the file is not a video, is too large, or the
                index is negative.
            StorageError: If the file cannot be written.
        """
        self._check_event_index(event_index)
        self._check_upload(upload, "video")

        filename = generate_filename(upload.filename)
        _write_bytes(self.timeline_dir / filename, upload.data)

        logger.info(f"Stored timeline video {filename} for event {event_index}")
        return filename
