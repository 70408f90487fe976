import io
import uuid
from datetime import UTC, datetime, timedelta

import stripe

from artydrop.models.gallery import Gallery, Photo
from artydrop.repositories.gallery_repository import GalleryRepository


class DummyAsyncS3Client:
    """In-memory stand-in for AsyncS3Client."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str | None] = {}
        self.failing_downloads: set[str] = set()
        self.failing_uploads: set[str] = set()
        self.download_calls: list[str] = []
        self.deleted: list[str] = []

    async def upload_fileobj(self, file_obj, key: str, content_type: str | None = None) -> str:
        data = file_obj if isinstance(file_obj, bytes) else file_obj.read()
        if any(marker in key for marker in self.failing_uploads):
            raise RuntimeError(f"upload of {key} failed")
        self.objects[key] = data
        self.content_types[key] = content_type
        return f"/photos/{key}"

    async def download_fileobj(self, key: str) -> bytes:
        self.download_calls.append(key)
        if key in self.failing_downloads:
            raise RuntimeError(f"download of {key} failed")
        return self.objects[key]

    async def delete_file(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)

    def public_url(self, key: str) -> str:
        return f"http://s3.test/photos/{key}"

    async def close(self) -> None:
        pass


def add_photos(repo: GalleryRepository, s3_client: DummyAsyncS3Client, gallery: Gallery, filenames: list[str]) -> list[Photo]:
    """Insert photos with strictly increasing timestamps and store their bytes."""
    base = datetime.now(UTC)
    photos = []
    for index, filename in enumerate(filenames):
        storage_path = f"{gallery.id}/{index}-{filename}"
        s3_client.objects[storage_path] = f"image data {index} {filename}".encode()
        photo = Photo(gallery_id=gallery.id, filename=filename, storage_path=storage_path, created_at=base + timedelta(seconds=index))
        repo.db.add(photo)
        photos.append(photo)
    repo.db.commit()
    return photos


def create_gallery(repo: GalleryRepository, s3_client: DummyAsyncS3Client, photo_count: int, name: str = "Wedding") -> Gallery:
    gallery = repo.create_gallery(name, "Jane Doe", "#ff0000", photo_count)
    add_photos(repo, s3_client, gallery, [f"photo{i}.jpg" for i in range(photo_count)])
    return gallery


def upload_form_files(count: int, prefix: str = "img") -> list[tuple[str, tuple[str, io.BytesIO, str]]]:
    return [("files", (f"{prefix}{i}.jpg", io.BytesIO(f"jpeg bytes {i}".encode()), "image/jpeg")) for i in range(count)]


def random_id() -> str:
    return str(uuid.uuid4())


def stripe_session(gallery_id, session_id: str = "cs_test_1", payment_status: str = "paid", metadata: dict | None = None) -> stripe.checkout.Session:
    """Checkout session as the Stripe SDK returns it."""
    if metadata is None:
        metadata = {"gallery_id": str(gallery_id)}
    values = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "metadata": metadata,
        "client_reference_id": str(gallery_id) if gallery_id else None,
    }
    return stripe.checkout.Session.construct_from(values, "sk_test_dummy")


def stripe_event(event_type: str, data_object: dict) -> stripe.Event:
    values = {"id": "evt_test_1", "object": "event", "type": event_type, "data": {"object": data_object}}
    return stripe.Event.construct_from(values, "sk_test_dummy")


def completed_session_event(gallery_id, payment_status: str = "paid", metadata: dict | None = None) -> stripe.Event:
    session = stripe_session(gallery_id, payment_status=payment_status, metadata=metadata)
    return stripe_event("checkout.session.completed", session.to_dict())
