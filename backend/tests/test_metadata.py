"""Tests for the metadata resolver — placeholder cascade, sorting, isolation."""

import asyncio
import json
import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.schemas.files import FileMetadata
from app.services.metadata import MetadataResolver, filter_files, proxy_path_for
from app.storage import StorageEntry
from app.utils.hashing import js_string_hash, mock_location


def _write(storage, key: str, data: bytes, mtime: float | None = None):
    path = storage.root / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def _mock_backend(entries, texts=None):
    """Backend double: ``texts`` maps key -> body or exception."""
    texts = texts or {}

    async def fetch_text(key):
        value = texts.get(key, FileNotFoundError(key))
        if isinstance(value, BaseException):
            raise value
        return value

    backend = MagicMock()
    backend.list = AsyncMock(return_value=entries)
    backend.fetch_text = AsyncMock(side_effect=fetch_text)
    backend.signed_url = AsyncMock(side_effect=lambda key, expiry: f"https://signed.example/{key}")
    return backend


class TestStoredEntries:
    @pytest.mark.asyncio
    async def test_stored_image(self, storage, resolver):
        _write(storage, "images/photo.jpg", b"\xff" * (2 * 1024 * 1024), mtime=1_700_000_000)

        files = await resolver.list_files("images")

        assert len(files) == 1
        f = files[0]
        assert f.display_name == "photo.jpg"
        assert f.stored_name == "photo.jpg"
        assert f.size_label == "2.00 MB"
        assert f.category == "image"
        assert f.resolved_path == "/media/images/photo.jpg"
        assert f.proxy_path == "/api/storage?file=images/photo.jpg"
        assert f.mtime_ms == 1_700_000_000_000
        assert f.is_external is False
        assert f.location == mock_location("photo.jpg")
        assert f.capture_date

    @pytest.mark.asyncio
    async def test_non_image_has_no_mock_exif(self, storage, resolver):
        _write(storage, "documents/report.pdf", b"%PDF" + b"0" * 8192)

        [f] = await resolver.list_files("documents")
        assert f.category == "document"
        assert f.capture_date is None
        assert f.location is None

    @pytest.mark.asyncio
    async def test_companion_overrides_names(self, storage, resolver):
        _write(storage, "videos/clip.mp4", b"\x00" * 10_000)
        _write(
            storage,
            "videos/clip.mp4.json",
            json.dumps({"description": "Beach day", "displayName": "Our Clip"}).encode(),
        )

        [f] = await resolver.list_files("videos")
        assert f.display_name == "Our Clip"
        assert f.description == "Beach day"
        assert f.size_label != "External"

    @pytest.mark.asyncio
    async def test_malformed_companion_is_ignored(self, storage, resolver):
        _write(storage, "videos/clip.mp4", b"\x00" * 10_000)
        _write(storage, "videos/clip.mp4.json", b"{not json")

        [f] = await resolver.list_files("videos")
        assert f.display_name == "clip.mp4"
        assert f.description is None

    @pytest.mark.asyncio
    async def test_companion_files_are_not_listed(self, storage, resolver):
        _write(storage, "audios/song.mp3", b"\x00" * 10_000)
        _write(storage, "audios/song.mp3.json", b'{"description": "tune"}')

        files = await resolver.list_files("audios")
        assert [f.stored_name for f in files] == ["song.mp3"]
        assert files[0].category == "audio"


class TestPlaceholders:
    @pytest.mark.asyncio
    async def test_link_file_resolves_to_youtube(self, storage, resolver):
        _write(storage, "videos/video.link", b"external: https://youtu.be/abc123")

        [f] = await resolver.list_files("videos")
        assert f.resolved_path == "https://www.youtube.com/watch?v=abc123"
        assert f.size_label == "External"
        assert f.display_name == "video"
        assert f.proxy_path is None
        assert f.is_external is True

    @pytest.mark.asyncio
    async def test_link_suffix_is_case_insensitive(self, storage, resolver):
        _write(storage, "videos/Trailer.LINK", b"https://vimeo.com/76979871")

        [f] = await resolver.list_files("videos")
        assert f.resolved_path == "https://vimeo.com/76979871"
        assert f.display_name == "Trailer"

    @pytest.mark.asyncio
    async def test_link_prefers_provider_over_generic(self, storage, resolver):
        _write(
            storage,
            "videos/mixed.link",
            b"notes http://example.com/x and https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        )

        [f] = await resolver.list_files("videos")
        assert f.resolved_path == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_companion_external_url_wins(self, storage, resolver):
        _write(storage, "videos/big.link", b"external: https://youtu.be/other")
        _write(
            storage,
            "videos/big.link.json",
            json.dumps({"externalUrl": "https://cdn.example.com/big.mp4", "displayName": "Big Movie"}).encode(),
        )

        [f] = await resolver.list_files("videos")
        assert f.resolved_path == "https://cdn.example.com/big.mp4"
        assert f.display_name == "Big Movie"
        assert f.size_label == "External"

    @pytest.mark.asyncio
    async def test_small_text_file_without_link_suffix_is_probed(self, storage, resolver):
        _write(storage, "documents/pointer.txt", b"See https://example.com/manual.pdf for details.")

        [f] = await resolver.list_files("documents")
        assert f.size_label == "External"
        assert f.resolved_path == "https://example.com/manual.pdf"
        assert f.display_name == "pointer.txt"

    @pytest.mark.asyncio
    async def test_small_binary_file_stays_stored(self, storage, resolver):
        _write(storage, "images/tiny.png", b"\x89PNG\r\n\x1a\n\xff\xfe\x00")

        [f] = await resolver.list_files("images")
        assert f.size_label != "External"
        assert f.resolved_path == "/media/images/tiny.png"

    @pytest.mark.asyncio
    async def test_link_without_url_stays_stored(self, storage, resolver):
        _write(storage, "videos/broken.link", b"error_204")

        [f] = await resolver.list_files("videos")
        assert f.size_label != "External"
        assert f.proxy_path == proxy_path_for("videos/broken.link")


class TestListing:
    @pytest.mark.asyncio
    async def test_sorted_newest_first(self, storage, resolver):
        _write(storage, "images/old.jpg", b"\x00" * 5000, mtime=1_600_000_000)
        _write(storage, "images/new.jpg", b"\x00" * 5000, mtime=1_700_000_000)
        _write(storage, "images/mid.jpg", b"\x00" * 5000, mtime=1_650_000_000)

        files = await resolver.list_files("images")
        assert [f.stored_name for f in files] == ["new.jpg", "mid.jpg", "old.jpg"]

    @pytest.mark.asyncio
    async def test_unknown_timestamps_sort_last(self):
        entries = [
            StorageEntry(key="videos/a.mp4", name="a.mp4", size=9000, updated_at=None),
            StorageEntry(
                key="videos/b.mp4", name="b.mp4", size=9000,
                updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            ),
        ]
        resolver = MetadataResolver(_mock_backend(entries))

        files = await resolver.list_files("videos")
        assert [f.stored_name for f in files] == ["b.mp4", "a.mp4"]
        assert files[-1].mtime_ms == 0
        assert files[-1].last_modified == ""

    @pytest.mark.asyncio
    async def test_empty_folder(self, resolver):
        assert await resolver.list_files("documents") == []

    @pytest.mark.asyncio
    async def test_unknown_folder_raises(self, resolver):
        with pytest.raises(ValueError):
            await resolver.list_files("secrets")

    @pytest.mark.asyncio
    async def test_signed_urls_for_bucket_entries(self):
        entries = [StorageEntry(key="images/a.jpg", name="a.jpg", size=50_000)]
        resolver = MetadataResolver(_mock_backend(entries), signed_url_expiry=120)

        [f] = await resolver.list_files("images")
        assert f.resolved_path == "https://signed.example/images/a.jpg"
        assert f.proxy_path == "/api/storage?file=images/a.jpg"


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_probe_error_degrades_to_stored(self):
        entries = [
            StorageEntry(key="documents/a.txt", name="a.txt", size=100, content_type="text/plain"),
            StorageEntry(key="documents/b.link", name="b.link", size=40),
        ]
        backend = _mock_backend(
            entries,
            {
                "documents/a.txt": RuntimeError("network down"),
                "documents/b.link": "external: https://example.com/b",
            },
        )
        files = await MetadataResolver(backend).list_files("documents")

        by_name = {f.stored_name: f for f in files}
        assert by_name["a.txt"].size_label != "External"
        assert by_name["a.txt"].resolved_path == "https://signed.example/documents/a.txt"
        assert by_name["b.link"].resolved_path == "https://example.com/b"

    @pytest.mark.asyncio
    async def test_signing_error_falls_back_to_proxy(self):
        entries = [StorageEntry(key="images/a.jpg", name="a.jpg", size=50_000)]
        backend = _mock_backend(entries)
        backend.signed_url = AsyncMock(side_effect=PermissionError("denied"))

        [f] = await MetadataResolver(backend).list_files("images")
        assert f.resolved_path == "/api/storage?file=images/a.jpg"

    @pytest.mark.asyncio
    async def test_slow_probe_times_out(self):
        entries = [StorageEntry(key="videos/slow.link", name="slow.link", size=30)]
        backend = _mock_backend(entries)

        async def slow(key):
            await asyncio.sleep(1)
            return "external: https://example.com/late"

        backend.fetch_text = AsyncMock(side_effect=slow)
        resolver = MetadataResolver(backend, probe_timeout=0.05)

        [f] = await resolver.list_files("videos")
        assert f.size_label != "External"

    @pytest.mark.asyncio
    async def test_probe_concurrency_is_capped(self):
        entries = [
            StorageEntry(key=f"documents/n{i}.txt", name=f"n{i}.txt", size=50) for i in range(8)
        ]
        backend = _mock_backend(entries)
        active = 0
        peak = 0

        async def tracked(key):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            raise FileNotFoundError(key)

        backend.fetch_text = AsyncMock(side_effect=tracked)
        await MetadataResolver(backend, probe_concurrency=2).list_files("documents")

        assert peak <= 2


class TestFilter:
    def _meta(self, name, description=None):
        return FileMetadata(
            display_name=name, stored_name=name, size_label="1.00 MB",
            category="image", resolved_path=f"/media/images/{name}", description=description,
        )

    def test_matches_name_and_description(self):
        files = [self._meta("beach.jpg", "Sunset at the beach"), self._meta("city.jpg")]
        assert [f.display_name for f in filter_files(files, "SUNSET")] == ["beach.jpg"]
        assert [f.display_name for f in filter_files(files, "city")] == ["city.jpg"]

    def test_empty_query_returns_all(self):
        files = [self._meta("a.jpg"), self._meta("b.jpg")]
        assert len(filter_files(files, "")) == 2
        assert len(filter_files(files, None)) == 2


class TestMockLocation:
    def test_hash_matches_reference_values(self):
        assert js_string_hash("") == 0
        assert js_string_hash("a") == 97
        assert js_string_hash("ab") == 3105

    def test_location_is_deterministic(self):
        assert mock_location("a") == "New York, USA"
        assert mock_location("ab") == "Paris, France"
        assert mock_location("holiday-photo.jpg") == mock_location("holiday-photo.jpg")
