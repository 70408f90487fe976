import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from artydrop.archive import archive_filename, assemble_archive, content_disposition, s3_photo_fetcher
from artydrop.dependencies import get_s3_client
from artydrop.exceptions import ArchiveError, EmptyGalleryError
from artydrop.logger import GalleryEvent
from artydrop.logger import logger as event_logger
from artydrop.models.db import get_db
from artydrop.models.gallery import Gallery
from artydrop.pricing import price_for_photo_count
from artydrop.repositories.gallery_repository import GalleryRepository
from artydrop.s3_service import AsyncS3Client
from artydrop.schemas.gallery import GalleryDetailResponse, GalleryResponse, GalleryUploadResponse
from artydrop.schemas.photo import PhotoResponse, PhotoUploadResult
from artydrop.uploads import UploadOrchestrator

router = APIRouter(prefix="/galleries", tags=["galleries"])
logger = logging.getLogger(__name__)


def get_gallery_repository(db: Session = Depends(get_db)) -> GalleryRepository:
    return GalleryRepository(db)


def load_gallery(repo: GalleryRepository, gallery_id: str) -> Gallery:
    """Fetch a gallery, telling a missing gallery (404) apart from a storage failure (503)."""
    try:
        parsed_id = uuid.UUID(gallery_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gallery not found") from None

    try:
        gallery = repo.get_gallery(parsed_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load gallery {gallery_id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Gallery temporarily unavailable") from e

    if not gallery:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gallery not found")
    return gallery


def gallery_detail(repo: GalleryRepository, gallery: Gallery, s3_client: AsyncS3Client) -> GalleryDetailResponse:
    try:
        photos = repo.list_photos(gallery.id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load photos of gallery {gallery.id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Gallery temporarily unavailable") from e

    summary = GalleryResponse.from_db_gallery(gallery, photo_count=len(photos), price=price_for_photo_count(len(photos)))
    return GalleryDetailResponse(
        **summary.model_dump(),
        photos=[PhotoResponse.from_db_photo(photo, s3_client) for photo in photos],
    )


@router.post("", response_model=GalleryUploadResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(
    name: Annotated[str, Form()] = "",
    photographer_name: Annotated[str, Form()] = "",
    brand_color: Annotated[str | None, Form()] = None,
    files: Annotated[list[UploadFile] | None, File()] = None,
    repo: GalleryRepository = Depends(get_gallery_repository),
    s3_client: AsyncS3Client = Depends(get_s3_client),
) -> GalleryUploadResponse:
    """Create a gallery and upload its photos"""
    if not name.strip() or not photographer_name.strip():
        raise HTTPException(status_code=400, detail="Gallery name and photographer name are required")
    if not files:
        logger.warning("No files provided for gallery creation")
        raise HTTPException(status_code=400, detail="No files provided")

    orchestrator = UploadOrchestrator(repo, s3_client)
    gallery, result = await orchestrator.create_gallery(
        name=name.strip(),
        photographer_name=photographer_name.strip(),
        brand_color=brand_color,
        files=files,
    )

    results = []
    for outcome in result.outcomes:
        _, file = outcome.item
        filename = file.filename or "unknown"
        if outcome.ok:
            results.append(PhotoUploadResult(filename=filename, success=True, photo_id=outcome.value.id))
        else:
            results.append(PhotoUploadResult(filename=filename, success=False, error=str(outcome.error) if outcome.error else outcome.status.value))

    actual_count = repo.count_photos(gallery.id)
    logger.info(f"Gallery {gallery.id} created: {result.successful} successful, {result.failed} failed out of {len(files)}")

    return GalleryUploadResponse(
        gallery=GalleryResponse.from_db_gallery(gallery, photo_count=actual_count, price=price_for_photo_count(actual_count)),
        results=results,
        total_files=len(files),
        successful_uploads=result.successful,
        failed_uploads=result.total - result.successful,
    )


@router.get("/{gallery_id}", response_model=GalleryDetailResponse)
def get_gallery(
    gallery_id: str,
    repo: GalleryRepository = Depends(get_gallery_repository),
    s3_client: AsyncS3Client = Depends(get_s3_client),
) -> GalleryDetailResponse:
    gallery = load_gallery(repo, gallery_id)
    return gallery_detail(repo, gallery, s3_client)


@router.get("/{gallery_id}/download")
async def download_gallery_zip(
    gallery_id: str,
    repo: GalleryRepository = Depends(get_gallery_repository),
    s3_client: AsyncS3Client = Depends(get_s3_client),
) -> Response:
    gallery = load_gallery(repo, gallery_id)
    if not gallery.paid:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Gallery has not been paid for")

    photos = repo.list_photos(gallery.id)
    try:
        archive = await assemble_archive(photos, s3_photo_fetcher(s3_client))
    except EmptyGalleryError:
        raise HTTPException(status_code=404, detail="No photos found") from None
    except ArchiveError as e:
        logger.error(f"Archive assembly failed for gallery {gallery.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to prepare the download, please try again") from e

    event_logger.log_event(
        GalleryEvent.DOWNLOAD_ZIP,
        gallery.id,
        extra={"photo_count": len(photos), "entries": archive.entry_count, "failed": len(archive.failed)},
    )
    return Response(
        content=archive.content,
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(archive_filename(gallery.name))},
    )
