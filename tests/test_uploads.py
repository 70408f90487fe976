import io
from unittest.mock import AsyncMock

import pytest
from fastapi import UploadFile
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers

from artydrop.batch import FailurePolicy
from artydrop.exceptions import BatchAbortedError
from artydrop.models.gallery import Photo
from artydrop.uploads import MAX_FILE_SIZE, UploadOrchestrator, build_storage_path, clean_filename, guess_content_type


def _upload(filename: str, data: bytes = b"jpeg bytes", content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


def test_build_storage_path_format():
    assert build_storage_path("g-1", 4, "IMG.jpg", now_ms=1700000000000) == "g-1/1700000000000-4-IMG.jpg"


def test_build_storage_path_is_unique_per_index():
    paths = {build_storage_path("g-1", i, "IMG.jpg", now_ms=1) for i in range(5)}
    assert len(paths) == 5


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("IMG.jpg", "IMG.jpg"),
        ("dir/IMG.jpg", "IMG.jpg"),
        ("C:\\photos\\IMG.jpg", "IMG.jpg"),
        ("", "photo"),
        (None, "photo"),
    ],
)
def test_clean_filename(filename, expected):
    assert clean_filename(filename) == expected


def test_guess_content_type():
    assert guess_content_type("a.png", "application/octet-stream") == "image/png"
    assert guess_content_type("a.unknown", "image/webp") == "image/webp"
    assert guess_content_type("a.unknown", None) == "image/jpeg"


class TestUploadOrchestrator:
    @pytest.mark.asyncio
    async def test_all_files_uploaded(self, repo, s3_client):
        orchestrator = UploadOrchestrator(repo, s3_client)
        files = [_upload(f"img{i}.jpg", f"bytes {i}".encode()) for i in range(3)]

        gallery, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color="#ff0000", files=files)

        assert gallery.photo_count == 3
        assert gallery.brand_color == "#ff0000"
        assert result.successful == 3
        photos = repo.list_photos(gallery.id)
        assert [p.filename for p in photos] == ["img0.jpg", "img1.jpg", "img2.jpg"]
        for index, photo in enumerate(photos):
            assert photo.storage_path.startswith(f"{gallery.id}/")
            assert photo.storage_path.endswith(f"-{index}-img{index}.jpg")
            assert s3_client.objects[photo.storage_path] == f"bytes {index}".encode()
            assert s3_client.content_types[photo.storage_path] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_failed_upload_leaves_no_photo_row(self, repo, s3_client):
        s3_client.failing_uploads.add("-1-broken.jpg")
        orchestrator = UploadOrchestrator(repo, s3_client)
        files = [_upload("ok0.jpg"), _upload("broken.jpg"), _upload("ok2.jpg")]

        gallery, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color=None, files=files)

        assert result.successful == 2
        assert result.failed == 1
        assert result.errors()[0].item[1].filename == "broken.jpg"
        # Declared count keeps the submitted number, rows only hold what was stored
        assert gallery.photo_count == 3
        assert [p.filename for p in repo.list_photos(gallery.id)] == ["ok0.jpg", "ok2.jpg"]

    @pytest.mark.asyncio
    async def test_oversized_file_is_rejected(self, repo, s3_client):
        orchestrator = UploadOrchestrator(repo, s3_client)
        files = [_upload("huge.jpg", b"x" * (MAX_FILE_SIZE + 1)), _upload("small.jpg")]

        gallery, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color=None, files=files)

        assert result.successful == 1
        assert "too large" in str(result.errors()[0].error)
        assert repo.count_photos(gallery.id) == 1

    @pytest.mark.asyncio
    async def test_abort_policy_stops_on_first_failure(self, repo, s3_client):
        s3_client.failing_uploads.add("-0-broken.jpg")
        orchestrator = UploadOrchestrator(repo, s3_client)
        files = [_upload("broken.jpg"), _upload("ok.jpg")]

        with pytest.raises(BatchAbortedError):
            await orchestrator.create_gallery(
                name="Wedding",
                photographer_name="Jane Doe",
                brand_color=None,
                files=files,
                policy=FailurePolicy.ABORT_ON_ERROR,
            )
        assert s3_client.objects == {}


@pytest.fixture
def failing_photo_insert():
    """Make the database reject the photo row of any file named in the returned set."""
    rejected: set[str] = set()

    def reject(mapper, connection, target):
        if target.filename in rejected:
            raise OperationalError("INSERT INTO photos", {}, Exception("db insert failed"))

    event.listen(Photo, "before_insert", reject)
    yield rejected
    event.remove(Photo, "before_insert", reject)


class TestUploadDatabaseFailures:
    @pytest.mark.asyncio
    async def test_failed_insert_does_not_break_later_files(self, repo, s3_client, failing_photo_insert):
        failing_photo_insert.add("img1.jpg")
        orchestrator = UploadOrchestrator(repo, s3_client)
        files = [_upload(f"img{i}.jpg") for i in range(4)]

        gallery, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color=None, files=files)

        assert result.to_dict() == {"total": 4, "successful": 3, "failed": 1, "cancelled": 0}
        assert isinstance(result.errors()[0].error, OperationalError)
        assert [p.filename for p in repo.list_photos(gallery.id)] == ["img0.jpg", "img2.jpg", "img3.jpg"]

    @pytest.mark.asyncio
    async def test_object_of_failed_insert_is_removed(self, repo, s3_client, failing_photo_insert):
        failing_photo_insert.add("img0.jpg")
        orchestrator = UploadOrchestrator(repo, s3_client)

        gallery, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color=None, files=[_upload("img0.jpg"), _upload("img1.jpg")])

        [deleted] = s3_client.deleted
        assert deleted.startswith(f"{gallery.id}/") and deleted.endswith("-0-img0.jpg")
        assert list(s3_client.objects) == [p.storage_path for p in repo.list_photos(gallery.id)]

    @pytest.mark.asyncio
    async def test_failed_cleanup_keeps_insert_error(self, repo, s3_client, failing_photo_insert):
        failing_photo_insert.add("img0.jpg")
        s3_client.delete_file = AsyncMock(side_effect=RuntimeError("storage down"))
        orchestrator = UploadOrchestrator(repo, s3_client)

        _, result = await orchestrator.create_gallery(name="Wedding", photographer_name="Jane Doe", brand_color=None, files=[_upload("img0.jpg")])

        assert isinstance(result.errors()[0].error, OperationalError)
