"""Tests for file descriptor to media item mapping."""

from __future__ import annotations

import pytest

from conftest import file_id
from gallery.schemas.gallery import MediaType
from gallery.services.google_drive import FileDescriptor
from gallery.services.normalizer import infer_media_type, normalize_files, to_media_item


def descriptor(name: str, mime_type: str | None, **extra) -> FileDescriptor:
    return FileDescriptor(id=file_id(1), name=name, mime_type=mime_type, **extra)


class TestInferMediaType:
    @pytest.mark.parametrize(
        "name,mime_type,expected",
        [
            ("a.jpg", "image/jpeg", MediaType.PHOTO),
            ("a.heic", "image/heic", MediaType.PHOTO),
            ("clip.mp4", "video/mp4", MediaType.VIDEO),
            ("clip.mp4", "application/octet-stream", MediaType.VIDEO),
            ("CLIP.MOV", "application/octet-stream", MediaType.VIDEO),
            ("photo.jpg", "application/octet-stream", MediaType.PHOTO),
            ("Untitled Media", "application/octet-stream", MediaType.PHOTO),
            ("mystery", None, MediaType.PHOTO),
        ],
    )
    def test_media(self, name, mime_type, expected):
        assert infer_media_type(descriptor(name, mime_type)) == expected

    @pytest.mark.parametrize(
        "mime_type",
        [
            "application/pdf",
            "application/vnd.google-apps.folder",
            "application/vnd.google-apps.document",
            "text/plain",
        ],
    )
    def test_not_media(self, mime_type):
        assert infer_media_type(descriptor("file", mime_type)) is None


class TestToMediaItem:
    def test_photo(self):
        item = to_media_item(
            descriptor("Opening.jpg", "image/jpeg", created_time="2024-03-01T09:00:00.000Z")
        )

        assert item.id == file_id(1)
        assert item.media_type == MediaType.PHOTO
        assert item.src == f"/api/media/{file_id(1)}"
        assert item.thumbnail == f"/api/thumbnail/{file_id(1)}"
        assert item.caption == "Opening.jpg"
        assert item.date == "2024-03-01T09:00:00.000Z"

    def test_missing_name_gets_default_caption(self):
        item = to_media_item(descriptor("", "image/png"))
        assert item.caption == "Untitled"
        assert item.date is None

    def test_missing_id_is_skipped(self):
        assert to_media_item(FileDescriptor(id="", name="a.jpg", mime_type="image/jpeg")) is None


class TestNormalizeFiles:
    def test_mixed_folder(self):
        files = [
            FileDescriptor(id=file_id(1), name="a.jpg", mime_type="image/jpeg"),
            FileDescriptor(id=file_id(2), name="b.pdf", mime_type="application/pdf"),
            FileDescriptor(id=file_id(3), name="c.mp4", mime_type="video/mp4"),
        ]

        items = normalize_files(files)

        assert [i.id for i in items] == [file_id(1), file_id(3)]
        assert [i.media_type for i in items] == [MediaType.PHOTO, MediaType.VIDEO]

    def test_camel_case_serialization(self):
        item = normalize_files([FileDescriptor(id=file_id(1), name="a.jpg", mime_type="image/jpeg")])[0]
        data = item.model_dump(by_alias=True, mode="json")
        assert data["mediaType"] == "photo"
        assert set(data) == {"id", "mediaType", "src", "thumbnail", "caption", "date"}
