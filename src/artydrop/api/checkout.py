import logging

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from artydrop.api.gallery import gallery_detail, get_gallery_repository, load_gallery
from artydrop.checkout import confirm_payment, create_checkout_session, handle_webhook_event
from artydrop.dependencies import get_payment_client, get_s3_client
from artydrop.exceptions import GalleryNotFoundError, InvalidCheckoutRequestError, PaymentNotVerifiedError, PaymentProviderError
from artydrop.payments import StripeCheckoutClient
from artydrop.repositories.gallery_repository import GalleryRepository
from artydrop.s3_service import AsyncS3Client
from artydrop.schemas.checkout import CheckoutErrorResponse, CreateCheckoutRequest, CreateCheckoutResponse
from artydrop.schemas.gallery import GalleryDetailResponse

router = APIRouter(tags=["checkout"])
logger = logging.getLogger(__name__)

CHECKOUT_FAILED_MESSAGE = "Failed to create the payment session"


def _validation_message(error: ValidationError) -> str:
    fields = "; ".join(f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in error.errors())
    return f"Invalid checkout request: {fields}"


@router.post(
    "/create-checkout",
    response_model=CreateCheckoutResponse,
    responses={400: {"model": CheckoutErrorResponse}, 404: {"model": CheckoutErrorResponse}, 500: {"model": CheckoutErrorResponse}},
    openapi_extra={"requestBody": {"required": True, "content": {"application/json": {"schema": CreateCheckoutRequest.model_json_schema(by_alias=True)}}}},
)
async def create_checkout(
    request: Request,
    repo: GalleryRepository = Depends(get_gallery_repository),
    payment_client: StripeCheckoutClient = Depends(get_payment_client),
):
    """Open a Stripe session for a gallery archive.

    Every failure, including a malformed body, is answered with an ``{"error": ...}`` body.
    """
    try:
        body = CreateCheckoutRequest.model_validate(await request.json())
    except ValidationError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": _validation_message(e)})
    except ValueError:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Request body must be JSON"})

    origin = payment_client.settings.public_base_url
    cancel_url = None
    if not origin:
        # No front end configured, Stripe sends the client back to this API
        origin = str(request.base_url)
        cancel_url = str(request.url_for("get_gallery", gallery_id=str(body.gallery_id)))
    try:
        session_id = await run_in_threadpool(
            create_checkout_session,
            repo,
            payment_client,
            gallery_id=body.gallery_id,
            gallery_name=body.gallery_name,
            photographer_name=body.photographer_name,
            photo_count=body.photo_count,
            price=body.price,
            origin=origin,
            cancel_url=cancel_url,
        )
    except GalleryNotFoundError as e:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(e)})
    except InvalidCheckoutRequestError as e:
        logger.warning(f"Rejected checkout for gallery {body.gallery_id}: {e}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(e)})
    except PaymentProviderError:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": CHECKOUT_FAILED_MESSAGE})

    return CreateCheckoutResponse(session_id=session_id)


@router.get("/success", response_model=GalleryDetailResponse)
def checkout_success(
    gallery_id: str = Query(...),
    session_id: str = Query(..., min_length=1),
    repo: GalleryRepository = Depends(get_gallery_repository),
    payment_client: StripeCheckoutClient = Depends(get_payment_client),
    s3_client: AsyncS3Client = Depends(get_s3_client),
) -> GalleryDetailResponse:
    """Landing page of the Stripe success redirect"""
    gallery = load_gallery(repo, gallery_id)
    try:
        gallery = confirm_payment(repo, payment_client, gallery_id=gallery.id, session_id=session_id)
    except GalleryNotFoundError:
        raise HTTPException(status_code=404, detail="Gallery not found") from None
    except PaymentNotVerifiedError as e:
        logger.warning(f"Payment not verified for gallery {gallery_id}: {e}")
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Payment has not been confirmed") from e
    except PaymentProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not confirm the payment, please try again") from e

    return gallery_detail(repo, gallery, s3_client)


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="Stripe-Signature"),
    repo: GalleryRepository = Depends(get_gallery_repository),
    payment_client: StripeCheckoutClient = Depends(get_payment_client),
):
    payload = await request.body()
    try:
        event = payment_client.parse_event(payload, stripe_signature)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning("Rejected Stripe webhook with an invalid signature")
        raise HTTPException(status_code=400, detail="Invalid signature") from e

    try:
        gallery = handle_webhook_event(repo, payment_client, event)
    except GalleryNotFoundError as e:
        # Acknowledged so Stripe does not keep retrying an event for a gallery that does not exist
        logger.warning(f"Stripe webhook for unknown gallery: {e}")
        gallery = None

    return {"received": True, "gallery_id": str(gallery.id) if gallery else None}
