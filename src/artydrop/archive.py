"""ZIP archive assembly for paid gallery downloads."""

import io
import logging
import posixpath
import zipfile
from collections.abc import Awaitable, Callable, Sequence
from urllib.parse import quote

from artydrop.batch import FailurePolicy, run_batch
from artydrop.exceptions import ArchiveError, EmptyGalleryError
from artydrop.models.gallery import Photo
from artydrop.s3_service import AsyncS3Client

logger = logging.getLogger(__name__)

PhotoFetcher = Callable[[Photo], Awaitable[bytes]]


class GalleryArchive:
    def __init__(self, content: bytes, filenames: list[str], failed: list[Photo]):
        self.content = content
        self.filenames = filenames
        self.failed = failed

    @property
    def entry_count(self) -> int:
        return len(self.filenames)


def s3_photo_fetcher(s3_client: AsyncS3Client) -> PhotoFetcher:
    async def fetch(photo: Photo) -> bytes:
        return await s3_client.download_fileobj(photo.storage_path)

    return fetch


def archive_filename(gallery_name: str | None) -> str:
    name = (gallery_name or "").strip().replace('"', "").replace("/", "_") or "gallery"
    return f"{name}.zip"


def content_disposition(filename: str) -> str:
    # Header values must be latin-1, non-ASCII names go through filename*
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _unique_entry_name(filename: str, used: set[str]) -> str:
    """Entry name for a photo, suffixed with " (n)" when an earlier photo has the same name."""
    name = posixpath.basename(filename.replace("\\", "/")) or "photo"
    if name not in used:
        return name
    stem, ext = posixpath.splitext(name)
    n = 2
    while f"{stem} ({n}){ext}" in used:
        n += 1
    return f"{stem} ({n}){ext}"


async def assemble_archive(
    photos: Sequence[Photo],
    fetch: PhotoFetcher,
    *,
    policy: FailurePolicy = FailurePolicy.CONTINUE_ON_ERROR,
) -> GalleryArchive:
    """Fetch every photo and bundle them into one in-memory ZIP.

    Photos that fail to fetch are logged and left out. The archive keeps the
    order of ``photos``.

    Raises:
        EmptyGalleryError: ``photos`` is empty
        ArchiveError: No photo could be fetched or the ZIP could not be written
    """
    if not photos:
        raise EmptyGalleryError("No photos found")

    result = await run_batch(photos, fetch, policy=policy)
    for outcome in result.errors():
        logger.error("Failed to fetch photo %s (%s): %s", outcome.item.id, outcome.item.storage_path, outcome.error)

    if result.successful == 0:
        raise ArchiveError(f"None of the {len(photos)} photos could be fetched")

    used: set[str] = set()
    filenames: list[str] = []
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zipf:
            for outcome in result.outcomes:
                if not outcome.ok:
                    continue
                entry_name = _unique_entry_name(outcome.item.filename, used)
                used.add(entry_name)
                zipf.writestr(entry_name, outcome.value)
                filenames.append(entry_name)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        logger.exception("Failed to write archive")
        raise ArchiveError("Failed to write archive") from e

    failed = [o.item for o in result.errors()]
    logger.info(f"Archive assembled: {len(filenames)} entries, {len(failed)} failed")
    return GalleryArchive(buffer.getvalue(), filenames, failed)
