"""Pydantic models for the content document and the API responses.

These models define the JSON schema of ``content.json`` and of every API
endpoint.  FastAPI uses them for automatic request validation,
serialisation, and OpenAPI documentation generation.

Models
------
Photo
    One gallery photo: the stored original and its optimized variant.
TimelineEvent
    Tagged union of the five timeline entry kinds, discriminated by
    ``type``.
Content
    The whole site document: photos, video, timeline, messages, colours.
SuccessResponse, UploadedFileResponse, PhotoUploadResponse, ErrorResponse
    Response envelopes returned by the routes.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag

MAX_PHOTOS = 30


class Photo(BaseModel):
    """A gallery photo.

    Attributes:
        original: Filename of the uploaded original in the photos directory.
        optimized: Filename of the resized display variant.  This is the
            photo's identity for deletion.
        caption: Optional caption shown under the photo.
        date: Optional free-form date string.
    """

    original: str = Field(..., description="Stored original filename.")
    optimized: str = Field(..., description="Optimized variant filename (identity).")
    caption: str | None = Field(default=None, description="Photo caption.")
    date: str | None = Field(default=None, description="Free-form date label.")


class TextEvent(BaseModel):
    """Timeline entry with text only."""

    type: Literal["text"] = "text"
    title: str = ""
    content: str = ""


class ImageEvent(BaseModel):
    """Timeline entry led by an image; ``content`` is optional decoration."""

    type: Literal["image"] = "image"
    title: str = ""
    content: str | None = None
    image: str | None = None


class VideoEvent(BaseModel):
    """Timeline entry led by a video; ``content`` is optional decoration."""

    type: Literal["video"] = "video"
    title: str = ""
    content: str | None = None
    video: str | None = None


class TextImageEvent(BaseModel):
    """Timeline entry with both text and an image."""

    type: Literal["text_image"] = "text_image"
    title: str = ""
    content: str = ""
    image: str | None = None


class TextVideoEvent(BaseModel):
    """Timeline entry with both text and a video."""

    type: Literal["text_video"] = "text_video"
    title: str = ""
    content: str = ""
    video: str | None = None


def _event_type(value: Any) -> str:
    """Return the ``type`` tag of a raw or validated timeline event.

    Entries written before the type selector existed carry no tag and are
    treated as text events.
    """
    if isinstance(value, dict):
        return value.get("type") or "text"
    return getattr(value, "type", "text")


TimelineEvent = Annotated[
    Union[
        Annotated[TextEvent, Tag("text")],
        Annotated[ImageEvent, Tag("image")],
        Annotated[VideoEvent, Tag("video")],
        Annotated[TextImageEvent, Tag("text_image")],
        Annotated[TextVideoEvent, Tag("text_video")],
    ],
    Discriminator(_event_type),
]


class Content(BaseModel):
    """The single aggregate document holding all site state.

    Attributes:
        photos: Ordered gallery photos (at most :data:`MAX_PHOTOS`).
        video: Filename of the site video, or ``None``.
        timeline: Ordered timeline events.
        messages: UI text field name -> text.
        colors: Colour slot name -> CSS colour string.
    """

    photos: list[Photo] = Field(default_factory=list, max_length=MAX_PHOTOS)
    video: str | None = None
    timeline: list[TimelineEvent] = Field(default_factory=list)
    messages: dict[str, str] = Field(default_factory=dict)
    colors: dict[str, str] = Field(default_factory=dict)


class SuccessResponse(BaseModel):
    """Response body for mutations that return no data."""

    success: bool = True


class UploadedFileResponse(BaseModel):
    """Response body for single-file uploads."""

    success: bool = True
    filename: str


class PhotoUploadResponse(BaseModel):
    """Response body for ``POST /upload/photos``."""

    success: bool = True
    files: list[Photo]


class ErrorResponse(BaseModel):
    """Structured failure indicator returned for every handled error."""

    success: bool = False
    error: str
