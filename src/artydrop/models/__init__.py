from artydrop.models.gallery import Gallery, Photo

__all__ = ["Gallery", "Photo"]
