# Repositories package

from .base_repository import BaseRepository
from .gallery_repository import GalleryRepository

__all__ = [
    "BaseRepository",
    "GalleryRepository",
]
