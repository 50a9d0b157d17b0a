"""
Listing lifecycle against the JSON backend and a media store in tmp_path.
"""
import asyncio
import logging
import re
from pathlib import Path

import pytest

from listings_api.core.errors import ListingNotFound, ListingValidationError, StorageError
from listings_api.services.listings import ListingService, parse_reference_list
from listings_api.services.media import IMAGES, VIDEOS, MediaStore, UploadedMedia
from listings_api.stores.json_store import JsonPropertyStore


@pytest.fixture
def media(tmp_path):
    return MediaStore(tmp_path / "uploads")


@pytest.fixture
def store(tmp_path):
    return JsonPropertyStore(tmp_path / "properties.json")


@pytest.fixture
def service(store, media):
    return ListingService(store, media, max_images=3, max_videos=2, max_upload_size=1024)


def run(coro):
    return asyncio.run(coro)


def image(name, content=b"img"):
    return UploadedMedia(IMAGES, name, content)


def video(name, content=b"vid"):
    return UploadedMedia(VIDEOS, name, content)


def media_files(media):
    return sorted(p.name for p in media.root.rglob("*") if p.is_file())


# ── parse_reference_list ─────────────────────────────────────────────────────

class TestParseReferenceList:
    def test_none(self):
        assert parse_reference_list(None) == []

    def test_json_array(self):
        assert parse_reference_list('["/uploads/a.jpg", "/uploads/b.jpg"]') == [
            "/uploads/a.jpg", "/uploads/b.jpg",
        ]

    def test_comma_separated(self):
        assert parse_reference_list("/uploads/a.jpg, /uploads/b.jpg,") == [
            "/uploads/a.jpg", "/uploads/b.jpg",
        ]

    def test_single_plain_reference(self):
        assert parse_reference_list("/uploads/videos/old.mp4") == ["/uploads/videos/old.mp4"]

    def test_json_string(self):
        assert parse_reference_list('"/uploads/a.jpg"') == ["/uploads/a.jpg"]

    def test_list_of_form_values(self):
        assert parse_reference_list(["/uploads/a.jpg", '["/uploads/b.jpg"]']) == [
            "/uploads/a.jpg", "/uploads/b.jpg",
        ]

    def test_blank(self):
        assert parse_reference_list("   ") == []


# ── create_listing ───────────────────────────────────────────────────────────

class TestCreate:
    def test_two_bhk_scenario(self, service, media):
        record = run(service.create_listing(
            {"title": "2BHK Flat"}, [image("a.jpg"), image("b.png")],
        ))
        assert record["id"]
        assert record["title"] == "2BHK Flat"
        assert len(record["images"]) == 2
        assert re.fullmatch(r"/uploads/images/\d+-a\.jpg", record["images"][0])
        assert re.fullmatch(r"/uploads/images/\d+-b\.png", record["images"][1])
        for ref in record["images"]:
            assert media.resolve(ref).exists()
        assert run(service.store.find_by_id(record["id"])) == record

    def test_defaults_applied(self, service):
        record = run(service.create_listing({}, [image("a.jpg")]))
        assert record["type"] == "buyers"
        assert record["negotiable"] is False
        assert record["videos"] == []
        assert "price" not in record

    def test_video_links_satisfy_media_policy(self, service):
        record = run(service.create_listing(
            {"title": "Villa"}, [], ["https://youtube.com/shorts/abc"],
        ))
        assert record["images"] == []
        assert record["videos"] == ["https://youtube.com/shorts/abc"]

    def test_uploaded_videos_before_links(self, service):
        record = run(service.create_listing({}, [video("tour.mp4")], ["https://youtu.be/x"]))
        assert record["videos"][0].startswith("/uploads/videos/")
        assert record["videos"][1] == "https://youtu.be/x"

    def test_local_video_link_rejected(self, service, media, store):
        owned = run(service.create_listing({"title": "A"}, [image("a.jpg")]))
        with pytest.raises(ListingValidationError, match="external URL"):
            run(service.create_listing({"title": "B"}, [], [owned["images"][0]]))
        with pytest.raises(ListingValidationError):
            run(service.create_listing({"title": "C"}, [], ["/uploads/videos/ghost.mp4"]))
        assert [r["title"] for r in store.read_all()] == ["A"]
        assert media.resolve(owned["images"][0]).exists()

    def test_no_media_rejected(self, service, store):
        with pytest.raises(ListingValidationError, match="At least one"):
            run(service.create_listing({"title": "Empty"}, [], []))
        assert store.read_all() == []

    def test_too_many_images_rejected_before_saving(self, service, media):
        with pytest.raises(ListingValidationError, match="Too many images"):
            run(service.create_listing({}, [image(f"{i}.jpg") for i in range(4)]))
        assert media_files(media) == []

    def test_bad_extension_rejected_before_saving(self, service, media):
        with pytest.raises(ListingValidationError):
            run(service.create_listing({}, [image("a.jpg"), image("evil.exe")]))
        assert media_files(media) == []

    def test_negative_bedrooms_rejected(self, service, media):
        with pytest.raises(ListingValidationError):
            run(service.create_listing({"bedrooms": -1}, [image("a.jpg")]))
        assert media_files(media) == []

    def test_store_failure_removes_saved_files(self, service, store, media):
        store.path.write_text("{corrupt")
        with pytest.raises(StorageError):
            run(service.create_listing({}, [image("a.jpg"), video("b.mp4")]))
        assert media_files(media) == []

    def test_save_failure_removes_earlier_files(self, service, media, monkeypatch):
        original_save = media.save
        calls = []

        def flaky_save(category, name, content):
            calls.append(name)
            if len(calls) == 2:
                raise OSError("disk full")
            return original_save(category, name, content)

        monkeypatch.setattr(media, "save", flaky_save)
        with pytest.raises(StorageError, match="disk full"):
            run(service.create_listing({}, [image("a.jpg"), image("b.jpg")]))
        assert media_files(media) == []
        assert service.store.read_all() == []


# ── update_listing ───────────────────────────────────────────────────────────

class TestUpdate:
    def test_unknown_id(self, service):
        with pytest.raises(ListingNotFound):
            run(service.update_listing("nope", {"title": "x"}))

    def test_scalar_fields_overwritten_others_kept(self, service):
        created = run(service.create_listing(
            {"title": "A", "description": "desc", "price": 100}, [image("a.jpg")],
        ))
        updated = run(service.update_listing(created["id"], {"price": 90, "title": None}))
        assert updated["price"] == 90
        assert updated["title"] == "A"
        assert updated["description"] == "desc"
        assert updated["images"] == created["images"]

    def test_new_uploads_appended(self, service, media):
        created = run(service.create_listing({}, [image("a.jpg")]))
        updated = run(service.update_listing(created["id"], {}, [image("c.jpg")]))
        assert updated["images"][0] == created["images"][0]
        assert len(updated["images"]) == 2
        assert media.resolve(updated["images"][1]).exists()

    def test_remove_subset_preserves_order_and_deletes_files(self, service, media):
        created = run(service.create_listing(
            {}, [image("a.jpg"), image("b.jpg"), image("c.jpg")],
        ))
        a, b, c = created["images"]
        updated = run(service.update_listing(created["id"], {}, remove_images=[b]))
        assert updated["images"] == [a, c]
        assert media.resolve(b) is not None and not media.resolve(b).exists()
        assert media.resolve(a).exists() and media.resolve(c).exists()

    def test_remove_video_scenario(self, service, media, store):
        old = media.save(VIDEOS, "old.mp4", b"v")
        store.write_all([{
            "id": "X", "title": "Keep", "type": "buyers",
            "images": [], "videos": [old, "https://youtu.be/x"],
        }])
        updated = run(service.update_listing("X", {}, remove_videos=[old]))
        assert updated["videos"] == ["https://youtu.be/x"]
        assert updated["title"] == "Keep"
        assert not media.resolve(old).exists()

    def test_removing_unknown_reference_is_noop(self, service, media):
        created = run(service.create_listing({}, [image("a.jpg")]))
        other = media.save(IMAGES, "other.jpg", b"x")
        updated = run(service.update_listing(created["id"], {}, remove_images=[other]))
        assert updated["images"] == created["images"]
        # file belongs to no part of this listing, so it is left alone
        assert media.resolve(other).exists()

    def test_local_video_link_rejected(self, service, media):
        owned = run(service.create_listing({}, [image("a.jpg")]))
        target = run(service.create_listing({}, [], ["https://youtu.be/x"]))
        with pytest.raises(ListingValidationError):
            run(service.update_listing(target["id"], {}, [image("new.jpg")],
                                       video_links=[owned["images"][0]]))
        assert run(service.store.find_by_id(target["id"]))["videos"] == ["https://youtu.be/x"]
        assert len(media_files(media)) == 1

        run(service.delete_listing(target["id"]))
        assert media.resolve(owned["images"][0]).exists()

    def test_id_cannot_be_changed(self, service):
        created = run(service.create_listing({}, [image("a.jpg")]))
        updated = run(service.update_listing(created["id"], {"id": "hijack"}))
        assert updated["id"] == created["id"]

    def test_store_failure_keeps_removed_files(self, service, store, media, monkeypatch):
        created = run(service.create_listing({}, [image("a.jpg")]))

        async def broken_update(listing_id, fields):
            raise StorageError("write failed")

        monkeypatch.setattr(store, "update", broken_update)
        with pytest.raises(StorageError):
            run(service.update_listing(created["id"], {}, [image("new.jpg")],
                                       remove_images=created["images"]))
        assert media.resolve(created["images"][0]).exists()
        assert len(media_files(media)) == 1


# ── delete_listing ───────────────────────────────────────────────────────────

class TestDelete:
    def test_cascades_to_media(self, service, media):
        created = run(service.create_listing(
            {}, [image("a.jpg"), image("b.png"), video("tour.mp4")], ["https://youtu.be/x"],
        ))
        run(service.delete_listing(created["id"]))
        assert run(service.store.find_by_id(created["id"])) is None
        assert media_files(media) == []

    def test_unknown_id(self, service):
        with pytest.raises(ListingNotFound):
            run(service.delete_listing("nope"))

    def test_missing_file_does_not_block_delete(self, service, media):
        created = run(service.create_listing({}, [image("a.jpg"), image("b.jpg")]))
        media.resolve(created["images"][0]).unlink()
        run(service.delete_listing(created["id"]))
        assert run(service.store.find_by_id(created["id"])) is None
        assert media_files(media) == []

    def test_file_delete_error_does_not_block_delete(self, service, media, monkeypatch):
        created = run(service.create_listing({}, [image("a.jpg")]))
        monkeypatch.setattr(media, "delete", lambda ref: False)
        run(service.delete_listing(created["id"]))
        assert run(service.store.find_by_id(created["id"])) is None

    def test_unlink_error_logged_and_record_removed(self, service, media, monkeypatch, caplog):
        created = run(service.create_listing({}, [image("a.jpg")]))

        def denied(self, missing_ok=False):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr(Path, "unlink", denied)
        with caplog.at_level(logging.WARNING, logger="listings_api.services.media"):
            run(service.delete_listing(created["id"]))
        monkeypatch.undo()

        assert run(service.store.find_by_id(created["id"])) is None
        assert media.resolve(created["images"][0]).exists()
        assert "Failed to delete" in caplog.text
