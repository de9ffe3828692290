"""Error taxonomy for the Memory Site service.

Every error raised deliberately by the store, the ingest pipeline, or the
routes derives from :class:`MemorySiteError`.  The API layer converts these
into ``{"success": false, "error": ...}`` responses using ``status_code``.
"""


class MemorySiteError(Exception):
    """Base class for all service errors.

    The message is intended to be displayed directly to the admin UI.
    """

    status_code: int = 500


class ValidationError(MemorySiteError):
    """Rejected input: wrong MIME type, missing file, photo ceiling exceeded."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """An uploaded file exceeds the configured size ceiling."""

    status_code = 413


class NotFoundError(MemorySiteError):
    """A requested resource does not exist."""

    status_code = 404


class StorageError(MemorySiteError, OSError):
    """The content document or a media file could not be read or written."""

    status_code = 500
