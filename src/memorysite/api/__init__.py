"""Memory Site — FastAPI REST API layer.

This package contains the FastAPI application, the Pydantic document and
response models, the content store, and the media ingest pipeline.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for the content document and API responses.
content_store
    File-backed ``content.json`` persistence with default seeding.
media
    Upload validation, storage, and optimized image variants.
"""
