"""Memory Site — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application follows a stateless REST pattern:

- **Content persistence** uses a single ``content.json`` document managed by
  :class:`~memorysite.api.content_store.ContentStore` — no database required.
- **Uploads** are handled by :class:`~memorysite.api.media.MediaIngest`, which
  stores files per category and derives optimized image variants.
- **Uploaded media** is served by FastAPI's ``StaticFiles`` at ``/uploads``.
- **The HTML pages** are served as raw ``HTMLResponse`` objects; the browser
  fetches all dynamic data from ``GET /api/content``.

Every failure, handled or not, is returned as ``{"success": false, "error": ...}``.

Endpoints
---------
========  =============================  =====================================
Method    Path                           Purpose
========  =============================  =====================================
GET       ``/``                          Public memory site page
GET       ``/admin``                     Admin panel page
GET       ``/api/content``               Current content document
POST      ``/api/content``               Replace the content document
DELETE    ``/api/photos/{filename}``     Delete a photo file and its record
POST      ``/upload/photos``             Upload gallery photos
POST      ``/upload/video``              Upload the site video
POST      ``/upload/timeline``           Upload a timeline image
POST      ``/upload/timeline-video``     Upload a timeline video
========  =============================  =====================================

Usage
-----
CLI (installed entry point)::

    memorysite

Direct invocation::

    python -m memorysite.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from memorysite import __version__
from memorysite.api.content_store import ContentStore
from memorysite.api.media import IncomingFile, MediaIngest
from memorysite.api.models import (
    Content,
    ErrorResponse,
    PhotoUploadResponse,
    SuccessResponse,
    UploadedFileResponse,
)
from memorysite.core.config import config
from memorysite.core.errors import MemorySiteError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle — store and ingest pipeline setup.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the content store and media pipeline from the active config.

    Both are stored on ``app.state`` so route handlers share one store (and
    therefore one write lock) for the lifetime of the process.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    store = ContentStore(config.content_file, celebrant_name=config.celebrant_name)
    app.state.config = config
    app.state.content_store = store
    app.state.media = MediaIngest.from_config(config, store)
    logger.info(f"Serving content from {config.content_file}")

    yield


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Memory Site",
    description="Content and media API for a personal-event memory site.",
    version=__version__,
    lifespan=lifespan,
)

# The admin UI may be served from another origin during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=str(config.uploads_dir)), name="uploads")


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


@app.exception_handler(MemorySiteError)
async def handle_service_error(request: Request, exc: MemorySiteError) -> JSONResponse:
    """Convert a service error into the structured failure envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Report any unhandled failure as HTTP 500 in the failure envelope."""
    logger.error(f"{request.method} {request.url.path} failed unexpectedly: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies in the failure envelope (HTTP 422)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "invalid request"
    logger.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": message, "detail": _jsonable_errors(errors)},
    )


def _jsonable_errors(errors) -> list[dict]:
    """Strip non-serialisable context (such as exception objects) from errors."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in errors
    ]


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _store() -> ContentStore:
    return app.state.content_store


def _media() -> MediaIngest:
    return app.state.media


async def _incoming(upload: UploadFile) -> IncomingFile:
    """Read an ``UploadFile`` into an :class:`IncomingFile`."""
    data = await upload.read()
    return IncomingFile(
        data=data,
        content_type=upload.content_type or "",
        filename=upload.filename or "",
    )


def _page(name: str) -> HTMLResponse:
    """Serve an HTML page from the configured templates directory."""
    page_path = app.state.config.templates_dir / name
    if page_path.exists():
        return HTMLResponse(content=page_path.read_text(encoding="utf-8"))
    raise NotFoundError(f"{name} not found")


# ---------------------------------------------------------------------------
# Pages.
# ---------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the public memory site page."""
    return _page("index.html")


@app.get("/admin", response_class=HTMLResponse)
async def admin() -> HTMLResponse:
    """Serve the admin panel page."""
    return _page("admin.html")


# ---------------------------------------------------------------------------
# Content routes.
# ---------------------------------------------------------------------------


@app.get("/api/content")
async def get_content() -> Content:
    """Return the full content document.

    The document is created with default messages, colours, and timeline
    entries the first time it is requested.

    Returns:
        The current :class:`Content` document.
    """
    return _store().read()


@app.post("/api/content")
async def save_content(body: Content) -> SuccessResponse:
    """Replace the content document.

    Top-level keys present in the body replace the stored values entirely.
    Top-level keys omitted from the body keep their stored values, so an
    admin save that only sends ``photos``, ``video`` and ``timeline`` does
    not erase the messages or colours.

    Args:
        body: The desired document (validated; at most 30 photos).

    Returns:
        ``{"success": true}``.
    """
    provided = body.model_fields_set

    def _merge(current: Content) -> Content:
        return current.model_copy(update={name: getattr(body, name) for name in provided})

    _store().update(_merge, fallback_to_empty=True)
    logger.info(f"Saved content ({', '.join(sorted(provided)) or 'no fields'})")
    return SuccessResponse()


@app.delete("/api/photos/{filename}")
async def delete_photo(filename: str) -> SuccessResponse:
    """Delete a photo file and any record that references it.

    Deleting a photo that no longer exists succeeds without changes.

    Args:
        filename: ``optimized`` (or ``original``) filename of the photo.

    Returns:
        ``{"success": true}``.
    """
    _media().delete_photo(filename)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Upload routes.
# ---------------------------------------------------------------------------


@app.post("/upload/photos")
async def upload_photos(
    photos: list[UploadFile] | None = File(None),
    captions: list[str] | None = Form(None),
    dates: list[str] | None = Form(None),
) -> PhotoUploadResponse:
    """Upload gallery photos.

    The whole batch is rejected, before any file is written, when it would
    take the gallery past the photo ceiling.

    Args:
        photos: Image files (multipart field ``photos``).
        captions: Optional caption per file index.
        dates: Optional date label per file index.

    Returns:
        ``{"success": true, "files": [Photo, ...]}``.
    """
    if not photos:
        raise ValidationError("No files uploaded")

    media = _media()
    if len(photos) > media.max_photos:
        raise ValidationError(f"At most {media.max_photos} photos can be uploaded at once")
    media.ensure_photo_capacity(len(photos))

    incoming = [await _incoming(upload) for upload in photos]
    created = media.ingest_photos(incoming, captions or [], dates or [])
    return PhotoUploadResponse(files=created)


@app.post("/upload/video")
async def upload_video(video: UploadFile | None = File(None)) -> UploadedFileResponse:
    """Upload the site video, replacing the current one.

    Args:
        video: Video file (multipart field ``video``).

    Returns:
        ``{"success": true, "filename": ...}``.
    """
    if video is None:
        raise ValidationError("No video file provided")
    filename = _media().ingest_video(await _incoming(video))
    return UploadedFileResponse(filename=filename)


@app.post("/upload/timeline")
async def upload_timeline_image(
    timeline_image: UploadFile | None = File(None, alias="timelineImage"),
    event_index: int | None = Form(None, alias="eventIndex"),
) -> UploadedFileResponse:
    """Upload an image for a timeline event.

    The caller attaches the returned filename to the event and saves the
    document with ``POST /api/content``.

    Args:
        timeline_image: Image file (multipart field ``timelineImage``).
        event_index: Index of the timeline event (field ``eventIndex``).

    Returns:
        ``{"success": true, "filename": ...}``.
    """
    if timeline_image is None:
        raise ValidationError("No timeline image provided")
    filename = _media().ingest_timeline_image(event_index, await _incoming(timeline_image))
    return UploadedFileResponse(filename=filename)


@app.post("/upload/timeline-video")
async def upload_timeline_video(
    timeline_video: UploadFile | None = File(None, alias="timelineVideo"),
    event_index: int | None = Form(None, alias="eventIndex"),
) -> UploadedFileResponse:
    """Upload a video for a timeline event.

    Args:
        timeline_video: Video file (multipart field ``timelineVideo``).
        event_index: Index of the timeline event (field ``eventIndex``).

    Returns:
        ``{"success": true, "filename": ...}``.
    """
    if timeline_video is None:
        raise ValidationError("No timeline video provided")
    filename = _media().ingest_timeline_video(event_index, await _incoming(timeline_video))
    return UploadedFileResponse(filename=filename)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port, and log level from :data:`~memorysite.core.config.config`
    (``MEMORYSITE_SERVER_HOST``, ``MEMORYSITE_SERVER_PORT`` and
    ``MEMORYSITE_LOG_LEVEL``).  Defaults to ``0.0.0.0:3001``.

    This function is registered as the ``memorysite`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Main site: http://localhost:{config.server_port}")
    logger.info(f"Admin panel: http://localhost:{config.server_port}/admin")

    uvicorn.run(
        "memorysite.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
