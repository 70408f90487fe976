from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PhotoResponse(BaseModel):
    id: UUID
    gallery_id: UUID
    filename: str
    url: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_db_photo(cls, photo, s3_client) -> "PhotoResponse":
        """Create PhotoResponse from database Photo model with its public URL"""
        return cls(
            id=photo.id,
            gallery_id=photo.gallery_id,
            filename=photo.filename,
            url=s3_client.public_url(photo.storage_path),
            created_at=photo.created_at,
        )


class PhotoUploadResult(BaseModel):
    """Result of uploading a single photo"""

    filename: str
    success: bool
    error: str | None = None
    photo_id: UUID | None = None
