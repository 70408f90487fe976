import logging
import uuid

from sqlalchemy import func, select

from artydrop.models.gallery import DEFAULT_BRAND_COLOR, Gallery, Photo
from artydrop.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class GalleryRepository(BaseRepository):
    def create_gallery(self, name: str, photographer_name: str, brand_color: str | None, photo_count: int) -> Gallery:
        gallery = Gallery(
            id=uuid.uuid4(),
            name=name,
            photographer_name=photographer_name,
            brand_color=brand_color or DEFAULT_BRAND_COLOR,
            photo_count=photo_count,
            paid=False,
        )
        self.db.add(gallery)
        self.db.commit()
        self.db.refresh(gallery)
        return gallery

    def get_gallery(self, gallery_id: uuid.UUID) -> Gallery | None:
        stmt = select(Gallery).where(Gallery.id == gallery_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def mark_gallery_paid(self, gallery_id: uuid.UUID) -> Gallery | None:
        """Set the paid flag. Calling it on an already paid gallery is a no-op."""
        gallery = self.get_gallery(gallery_id)
        if not gallery:
            return None
        if gallery.paid:
            logger.info("Gallery %s already marked as paid", gallery_id)
            return gallery
        gallery.paid = True
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(gallery)
        return gallery

    def list_photos(self, gallery_id: uuid.UUID) -> list[Photo]:
        # Upload order; id breaks ties between photos created in the same instant
        stmt = select(Photo).where(Photo.gallery_id == gallery_id).order_by(Photo.created_at.asc(), Photo.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def count_photos(self, gallery_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Photo).where(Photo.gallery_id == gallery_id)
        return self.db.execute(stmt).scalar() or 0

    def insert_photo(self, gallery_id: uuid.UUID, filename: str, storage_path: str) -> Photo:
        """Record one stored photo. A failed write is rolled back so the session stays usable."""
        photo = Photo(gallery_id=gallery_id, filename=filename, storage_path=storage_path)
        self.db.add(photo)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(photo)
        return photo
