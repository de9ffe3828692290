"""Tests for memorysite.api.content_store — content.json persistence."""

from __future__ import annotations

import json
import threading

import pytest

from memorysite.api.content_store import ContentStore, default_content
from memorysite.api.models import Content, ImageEvent, Photo, TextEvent
from memorysite.core.errors import StorageError


class TestSeeding:
    """First read of a fresh store."""

    def test_fresh_store_seeds_defaults(self, content_store: ContentStore):
        """A fresh read returns default messages, no photos, no video, four events."""
        assert not content_store.exists()

        content = content_store.read()

        assert content.photos == []
        assert content.video is None
        assert len(content.timeline) == 4
        assert all(isinstance(event, TextEvent) for event in content.timeline)
        assert content.timeline[0].title == "The Beginning"
        assert content.messages["heroTitle"] == "Happy Birthday Bryan!"
        assert content.colors["primaryColor"] == "#6366f1"

    def test_seeded_document_is_persisted(self, content_store: ContentStore):
        content_store.read()
        assert content_store.exists()
        raw = json.loads(content_store.content_file.read_text(encoding="utf-8"))
        assert raw["video"] is None
        assert len(raw["timeline"]) == 4

    def test_seed_uses_celebrant_name(self, test_config):
        store = ContentStore(test_config.content_file, celebrant_name="Ada")
        messages = store.read().messages
        assert messages["heroTitle"] == "Happy Birthday Ada!"
        assert "Ada" in messages["messageHighlight"]

    def test_default_colors_cover_all_slots(self):
        colors = default_content().colors
        assert set(colors) == {
            "primaryColor",
            "secondaryColor",
            "accentColor",
            "heroTextColor",
            "sectionTitleColor",
            "messageTextColor",
            "timelineDotColor",
            "timelineLineColor",
            "timelineTextColor",
        }

    def test_existing_document_not_reseeded(self, content_store: ContentStore, empty_content):
        content_store.write(empty_content)
        assert content_store.read().timeline == []


class TestRoundTrip:
    """write(c) followed by read() returns c."""

    def test_round_trip(self, content_store: ContentStore):
        content = Content(
            photos=[Photo(original="1-2.jpg", optimized="opt-1-2.jpg", caption="Cake", date="5/6/2024")],
            video="99-1.mp4",
            timeline=[
                TextEvent(title="Start", content="Once"),
                ImageEvent(title="Pic", image="timeline-3-4.jpg"),
            ],
            messages={"heroTitle": "Hi"},
            colors={"accentColor": "#000000"},
        )
        content_store.write(content)
        assert content_store.read() == content

    def test_non_ascii_preserved(self, content_store: ContentStore, empty_content):
        empty_content.messages["messageTitle"] = "Joyeux anniversaire \U0001f382"
        content_store.write(empty_content)

        assert "\U0001f382" in content_store.content_file.read_text(encoding="utf-8")
        assert content_store.read().messages["messageTitle"].endswith("\U0001f382")

    def test_write_replaces_whole_document(self, content_store: ContentStore):
        content_store.read()
        content_store.write(Content(messages={"heroTitle": "Only"}))

        content = content_store.read()
        assert content.timeline == []
        assert content.colors == {}

    def test_write_leaves_no_temp_files(self, content_store: ContentStore, empty_content):
        content_store.write(empty_content)
        content_store.write(empty_content)
        leftovers = [p.name for p in content_store.content_file.parent.iterdir()]
        assert leftovers == ["content.json"]


class TestReadFailures:
    """Unreadable documents surface as StorageError."""

    def test_malformed_json(self, content_store: ContentStore):
        content_store.content_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            content_store.read()

    def test_schema_mismatch(self, content_store: ContentStore):
        content_store.content_file.write_text(json.dumps({"photos": "nope"}), encoding="utf-8")
        with pytest.raises(StorageError):
            content_store.read()

    def test_storage_error_is_os_error(self, content_store: ContentStore):
        content_store.content_file.write_text("[", encoding="utf-8")
        with pytest.raises(OSError):
            content_store.read()

    def test_write_into_missing_parent_is_created(self, temp_dir, empty_content):
        store = ContentStore(temp_dir / "nested" / "content.json")
        store.write(empty_content)
        assert store.exists()


class TestUpdate:
    """Read-modify-write cycles."""

    def test_update_mutating_in_place(self, content_store: ContentStore):
        content_store.update(lambda content: setattr(content, "video", "v.mp4"))
        assert content_store.read().video == "v.mp4"

    def test_update_with_replacement(self, content_store: ContentStore):
        content_store.update(lambda content: Content(video="w.mp4"))
        assert content_store.read() == Content(video="w.mp4")

    def test_update_raises_on_corrupt_document(self, content_store: ContentStore):
        content_store.content_file.write_text("{", encoding="utf-8")
        with pytest.raises(StorageError):
            content_store.update(lambda content: None)

    def test_update_fallback_starts_empty(self, content_store: ContentStore):
        content_store.content_file.write_text("{", encoding="utf-8")
        result = content_store.update(
            lambda content: setattr(content, "video", "v.mp4"),
            fallback_to_empty=True,
        )
        assert result == Content(video="v.mp4")
        assert content_store.read() == Content(video="v.mp4")

    def test_concurrent_updates_are_not_lost(self, content_store: ContentStore):
        """Updates from several threads should all land in the document."""
        content_store.write(Content())

        def _add(i: int) -> None:
            content_store.update(
                lambda content: content.photos.append(
                    Photo(original=f"{i}.jpg", optimized=f"opt-{i}.jpg")
                )
            )

        threads = [threading.Thread(target=_add, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(content_store.read().photos) == 10
