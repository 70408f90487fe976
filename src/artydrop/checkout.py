"""Checkout and payment confirmation for gallery archives.

A gallery moves from unpaid to paid only after Stripe confirms the payment,
either through the checkout session named in the success redirect or through a
signed ``checkout.session.completed`` webhook.
"""

import logging
import uuid

import stripe

from artydrop.exceptions import GalleryNotFoundError, InvalidCheckoutRequestError, PaymentNotVerifiedError
from artydrop.logger import GalleryEvent
from artydrop.logger import logger as event_logger
from artydrop.models.gallery import Gallery
from artydrop.payments import CheckoutSessionRequest, CheckoutSessionStatus, StripeCheckoutClient
from artydrop.pricing import price_for_photo_count, to_minor_units
from artydrop.repositories.gallery_repository import GalleryRepository

logger = logging.getLogger(__name__)

# Substituted by Stripe with the real session id when redirecting back
CHECKOUT_SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


def build_session_request(
    *,
    gallery_id: uuid.UUID,
    gallery_name: str,
    photographer_name: str,
    photo_count: int,
    price: int,
    origin: str,
    currency: str,
    cancel_url: str | None = None,
) -> CheckoutSessionRequest:
    """Session parameters for one gallery archive.

    ``cancel_url`` defaults to the front end gallery page under ``origin``.
    """
    origin = origin.rstrip("/")
    return CheckoutSessionRequest(
        currency=currency,
        unit_amount_minor=to_minor_units(price),
        product_name=f"Galerie: {gallery_name}",
        description=f"{photo_count} photos par {photographer_name}",
        success_url=f"{origin}/success?gallery_id={gallery_id}&session_id={CHECKOUT_SESSION_ID_PLACEHOLDER}",
        cancel_url=cancel_url or f"{origin}/gallery/{gallery_id}",
        metadata={"gallery_id": str(gallery_id)},
        client_reference_id=str(gallery_id),
    )


def create_checkout_session(
    repo: GalleryRepository,
    payment_client: StripeCheckoutClient,
    *,
    gallery_id: uuid.UUID,
    gallery_name: str,
    photographer_name: str,
    photo_count: int,
    price: int,
    origin: str,
    cancel_url: str | None = None,
) -> str:
    """Open a Stripe session for a gallery archive and return the session id.

    The charged amount is always derived from the gallery's actual photo rows,
    the client-side count and price are only checked against it.

    Raises:
        GalleryNotFoundError: Unknown gallery
        InvalidCheckoutRequestError: Count or price disagree with the gallery
        PaymentProviderError: Stripe refused or could not be reached
    """
    gallery = repo.get_gallery(gallery_id)
    if not gallery:
        raise GalleryNotFoundError(gallery_id)

    actual_count = repo.count_photos(gallery_id)
    if photo_count != actual_count:
        raise InvalidCheckoutRequestError(f"Gallery has {actual_count} photos, got photoCount={photo_count}")
    expected_price = price_for_photo_count(actual_count)
    if price != expected_price:
        raise InvalidCheckoutRequestError(f"Price for {actual_count} photos is {expected_price}, got price={price}")

    request = build_session_request(
        gallery_id=gallery_id,
        gallery_name=gallery_name,
        photographer_name=photographer_name,
        photo_count=actual_count,
        price=expected_price,
        origin=origin,
        currency=payment_client.settings.currency,
        cancel_url=cancel_url,
    )
    session_id = payment_client.create_session(request)
    event_logger.log_event(
        GalleryEvent.CHECKOUT_SESSION_CREATED,
        gallery_id,
        session_id=session_id,
        extra={"photo_count": actual_count, "unit_amount": request.unit_amount_minor},
    )
    return session_id


def _mark_paid(repo: GalleryRepository, gallery_id: uuid.UUID, source: str) -> Gallery:
    gallery = repo.mark_gallery_paid(gallery_id)
    if not gallery:
        raise GalleryNotFoundError(gallery_id)
    event_logger.log_event(GalleryEvent.GALLERY_PAID, gallery_id, source=source)
    return gallery


def confirm_payment(
    repo: GalleryRepository,
    payment_client: StripeCheckoutClient,
    *,
    gallery_id: uuid.UUID,
    session_id: str,
) -> Gallery:
    """Verify the session behind a success redirect and mark the gallery paid.

    Raises:
        GalleryNotFoundError: Unknown gallery
        PaymentNotVerifiedError: The session is unpaid or belongs to another gallery
        PaymentProviderError: Stripe could not be reached
    """
    if not repo.get_gallery(gallery_id):
        raise GalleryNotFoundError(gallery_id)

    if payment_client.settings.trust_success_redirect:
        logger.warning("Marking gallery %s paid from the success redirect without verification", gallery_id)
        return _mark_paid(repo, gallery_id, source="redirect")

    status = payment_client.retrieve_session(session_id)
    _check_session(status, gallery_id)
    return _mark_paid(repo, gallery_id, source="session")


def _check_session(status: CheckoutSessionStatus, gallery_id: uuid.UUID) -> None:
    if status.gallery_id != str(gallery_id):
        raise PaymentNotVerifiedError(f"Session {status.session_id} does not belong to gallery {gallery_id}")
    if not status.is_paid:
        raise PaymentNotVerifiedError(f"Session {status.session_id} is not paid (payment_status={status.payment_status})")


def handle_webhook_event(repo: GalleryRepository, payment_client: StripeCheckoutClient, event: stripe.Event) -> Gallery | None:
    """Mark the gallery of a completed, paid checkout session as paid.

    Returns the gallery, or None when the event does not concern a paid gallery checkout.
    """
    status = payment_client.completed_session_status(event)
    if status is None:
        logger.info("Ignoring Stripe event %s", event["type"])
        return None
    if not status.is_paid or not status.gallery_id:
        logger.info("Checkout session %s completed without a paid gallery", status.session_id)
        return None
    try:
        gallery_id = uuid.UUID(status.gallery_id)
    except ValueError:
        logger.warning("Checkout session %s carries an invalid gallery id %r", status.session_id, status.gallery_id)
        return None
    return _mark_paid(repo, gallery_id, source="webhook")
