"""Stripe Checkout client.

Thin wrapper over the ``stripe`` SDK: one-shot session creation, session
retrieval for payment verification and webhook event parsing. Every call is a
single attempt; Stripe errors are logged and re-raised as PaymentProviderError.
"""

import logging
from functools import lru_cache

import stripe
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from artydrop.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)


class PaymentSettings(BaseSettings):
    """Stripe configuration, loaded from STRIPE_* environment variables."""

    secret_key: str = ""
    webhook_secret: str = ""
    currency: str = "eur"
    # Origin used to build the success/cancel redirect URLs; the request origin is used when unset
    public_base_url: str | None = None
    # Mark galleries paid on the success redirect without asking Stripe (legacy behaviour)
    trust_success_redirect: bool = False

    model_config = SettingsConfigDict(env_prefix="STRIPE_", env_file=".env", extra="ignore")


@lru_cache(maxsize=1)
def get_payment_settings() -> PaymentSettings:
    return PaymentSettings()


class CheckoutSessionRequest(BaseModel):
    """Everything Stripe needs to open a single-item payment session."""

    currency: str
    unit_amount_minor: int
    product_name: str
    description: str
    success_url: str
    cancel_url: str
    metadata: dict[str, str]
    client_reference_id: str | None = None


class CheckoutSessionStatus(BaseModel):
    session_id: str
    payment_status: str | None = None
    gallery_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


def _session_status(session: stripe.StripeObject) -> CheckoutSessionStatus:
    # StripeObject is not a dict; nested objects come back as plain dicts from to_dict()
    data = session.to_dict()
    metadata = data.get("metadata") or {}
    return CheckoutSessionStatus(
        session_id=data["id"],
        payment_status=data.get("payment_status"),
        gallery_id=metadata.get("gallery_id") or data.get("client_reference_id"),
    )


class StripeCheckoutClient:
    def __init__(self, settings: PaymentSettings | None = None):
        self.settings = settings or get_payment_settings()
        if not self.settings.secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set, checkout sessions will fail")
        # One attempt per call, failures surface to the caller immediately
        stripe.max_network_retries = 0

    def create_session(self, request: CheckoutSessionRequest) -> str:
        """Create a one-time payment session and return its id."""
        try:
            session = stripe.checkout.Session.create(
                api_key=self.settings.secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": request.currency,
                            "product_data": {
                                "name": request.product_name,
                                "description": request.description,
                            },
                            "unit_amount": request.unit_amount_minor,
                        },
                        "quantity": 1,
                    }
                ],
                success_url=request.success_url,
                cancel_url=request.cancel_url,
                metadata=request.metadata,
                client_reference_id=request.client_reference_id,
            )
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed: %s", e)
            raise PaymentProviderError(str(e)) from e

        logger.info("Created Stripe checkout session %s", session.id)
        return session.id

    def retrieve_session(self, session_id: str) -> CheckoutSessionStatus:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.settings.secret_key)
        except stripe.StripeError as e:
            logger.error("Stripe session %s retrieval failed: %s", session_id, e)
            raise PaymentProviderError(str(e)) from e
        return _session_status(session)

    def parse_event(self, payload: bytes, signature: str) -> stripe.Event:
        """Verify a webhook signature and return the Stripe event.

        Raises:
            ValueError: If the payload is not valid JSON
            stripe.SignatureVerificationError: If the signature does not match
        """
        return stripe.Webhook.construct_event(payload, signature, self.settings.webhook_secret)

    @staticmethod
    def completed_session_status(event: stripe.Event) -> CheckoutSessionStatus | None:
        """Session status carried by a checkout.session.completed event, None for other events."""
        if event["type"] != "checkout.session.completed":
            return None
        return _session_status(event["data"]["object"])
