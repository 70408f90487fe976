import uuid


class ArtydropError(Exception):
    """Base class for errors raised by the gallery workflow."""


class GalleryNotFoundError(ArtydropError):
    def __init__(self, gallery_id: uuid.UUID | str):
        super().__init__(f"Gallery {gallery_id} not found")
        self.gallery_id = gallery_id


class PaymentProviderError(ArtydropError):
    """The payment provider rejected a call or could not be reached."""


class PaymentNotVerifiedError(ArtydropError):
    """A checkout session does not prove payment for the requested gallery."""


class ArchiveError(ArtydropError):
    """The archive could not be produced."""


class EmptyGalleryError(ArchiveError):
    """The gallery has no photos to put in an archive."""


class BatchAbortedError(ArtydropError):
    """A batch running with the abort-on-error policy stopped at a failing item."""

    def __init__(self, index: int, cause: BaseException):
        super().__init__(f"Batch aborted at item {index}: {cause}")
        self.index = index
        self.cause = cause


class InvalidCheckoutRequestError(ArtydropError):
    """The checkout request does not match the gallery it names."""
