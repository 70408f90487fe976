"""Gallery creation from a set of uploaded files."""

import logging
import mimetypes
import posixpath
import time
from collections.abc import Sequence

from fastapi import UploadFile

from artydrop.batch import BatchResult, FailurePolicy, run_batch
from artydrop.logger import GalleryEvent
from artydrop.logger import logger as event_logger
from artydrop.models.gallery import Gallery, Photo
from artydrop.repositories.gallery_repository import GalleryRepository
from artydrop.s3_service import AsyncS3Client

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 15 * 1024 * 1024  # 15 MB


class FileTooLargeError(ValueError):
    pass


def clean_filename(filename: str | None) -> str:
    return posixpath.basename((filename or "").replace("\\", "/")) or "photo"


def build_storage_path(gallery_id, index: int, filename: str, now_ms: int | None = None) -> str:
    """Object key of an uploaded file: ``{gallery_id}/{unix_ms}-{index}-{filename}``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{gallery_id}/{now_ms}-{index}-{filename}"


def guess_content_type(filename: str, declared: str | None) -> str:
    guessed, _ = mimetypes.guess_type(filename)
    if guessed and guessed.startswith("image/"):
        return guessed
    return declared or "image/jpeg"


class UploadOrchestrator:
    def __init__(self, repo: GalleryRepository, s3_client: AsyncS3Client):
        self.repo = repo
        self.s3_client = s3_client

    async def _store_file(self, gallery: Gallery, index: int, file: UploadFile) -> Photo:
        contents = await file.read()
        if len(contents) > MAX_FILE_SIZE:
            raise FileTooLargeError(f"File too large (max 15MB), got {len(contents) / (1024 * 1024):.1f}MB")

        filename = clean_filename(file.filename)
        storage_path = build_storage_path(gallery.id, index, filename)
        await self.s3_client.upload_fileobj(contents, storage_path, content_type=guess_content_type(filename, file.content_type))
        try:
            return self.repo.insert_photo(gallery.id, filename, storage_path)
        except Exception:
            logger.error(f"Failed to record photo {storage_path}, removing the uploaded object")
            await self._discard_object(storage_path)
            raise

    async def _discard_object(self, storage_path: str) -> None:
        # The insert error is what the caller reports; a failed cleanup is only logged
        try:
            await self.s3_client.delete_file(storage_path)
        except Exception as e:
            logger.error(f"Object {storage_path} has no photo row and could not be deleted: {e}")

    async def create_gallery(
        self,
        *,
        name: str,
        photographer_name: str,
        brand_color: str | None,
        files: Sequence[UploadFile],
        policy: FailurePolicy = FailurePolicy.CONTINUE_ON_ERROR,
    ) -> tuple[Gallery, BatchResult]:
        """Create the gallery record, then upload and record each file.

        The gallery declares ``len(files)`` photos up front. Files that fail are
        reported in the batch result and leave no photo row behind.
        """
        gallery = self.repo.create_gallery(name, photographer_name, brand_color, len(files))
        logger.info(f"Created gallery {gallery.id}, uploading {len(files)} files")

        async def store(item: tuple[int, UploadFile]) -> Photo:
            index, file = item
            return await self._store_file(gallery, index, file)

        result = await run_batch(list(enumerate(files)), store, policy=policy)
        for outcome in result.errors():
            _, file = outcome.item
            logger.error(f"Failed to upload file {file.filename} to gallery {gallery.id}: {outcome.error}")

        event_logger.log_event(GalleryEvent.GALLERY_CREATED, gallery.id, extra=result.to_dict())
        return gallery, result
