from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from artydrop.schemas.photo import PhotoResponse, PhotoUploadResult


class GalleryResponse(BaseModel):
    id: UUID
    name: str
    photographer_name: str
    brand_color: str
    photo_count: int = Field(..., description="Number of photos actually stored in the gallery")
    declared_photo_count: int = Field(..., description="Number of files submitted when the gallery was created")
    price: int = Field(..., description="Archive price in whole currency units")
    paid: bool
    created_at: datetime

    @classmethod
    def from_db_gallery(cls, gallery, photo_count: int, price: int) -> "GalleryResponse":
        return cls(
            id=gallery.id,
            name=gallery.name,
            photographer_name=gallery.photographer_name,
            brand_color=gallery.brand_color,
            photo_count=photo_count,
            declared_photo_count=gallery.photo_count,
            price=price,
            paid=gallery.paid,
            created_at=gallery.created_at,
        )


class GalleryDetailResponse(GalleryResponse):
    photos: list[PhotoResponse]


class GalleryUploadResponse(BaseModel):
    """Response for gallery creation with its batch upload"""

    gallery: GalleryResponse
    results: list[PhotoUploadResult]
    total_files: int
    successful_uploads: int
    failed_uploads: int
