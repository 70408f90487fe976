import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import mapped_column, relationship

from artydrop.models.db import Base

DEFAULT_BRAND_COLOR = "#0070f3"


class Gallery(Base):
    __tablename__ = "galleries"

    id = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, unique=True, nullable=False)
    name = mapped_column(String, nullable=False)
    photographer_name = mapped_column(String, nullable=False)
    brand_color = mapped_column(String(32), nullable=False, default=DEFAULT_BRAND_COLOR)
    # Number of files declared when the gallery was created; actual rows are counted on read
    photo_count = mapped_column(Integer, nullable=False, default=0)
    paid = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    photos = relationship("Photo", back_populates="gallery")


class Photo(Base):
    __tablename__ = "photos"

    id = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    gallery_id = mapped_column(Uuid(as_uuid=True), ForeignKey("galleries.id"), nullable=False, index=True)
    filename = mapped_column(String, nullable=False)
    # S3 object key (e.g., gallery_id/1700000000000-0-filename)
    storage_path = mapped_column(String, nullable=False, unique=True)
    created_at = mapped_column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    gallery = relationship(Gallery, back_populates="photos")
