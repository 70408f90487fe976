"""
Dependency Injection for provider clients

The S3 client and the Stripe checkout client are created once during
application startup and shared across all requests.
"""

import logging
from collections.abc import AsyncGenerator

from artydrop.payments import StripeCheckoutClient
from artydrop.s3_service import AsyncS3Client

logger = logging.getLogger(__name__)

# Global instances (initialized during app startup)
_s3_client_instance: AsyncS3Client | None = None
_payment_client_instance: StripeCheckoutClient | None = None


async def get_s3_client() -> AsyncGenerator[AsyncS3Client]:
    """Dependency injection function for AsyncS3Client.

    Example:
        @router.get("/galleries/{gallery_id}/download")
        async def download(gallery_id: UUID, s3: AsyncS3Client = Depends(get_s3_client)):
            ...
    """
    if _s3_client_instance is None:
        raise RuntimeError("S3 client not initialized. Make sure the application lifespan is properly configured.")
    yield _s3_client_instance


def set_s3_client_instance(client: AsyncS3Client | None) -> None:
    """Set the global S3 client instance.

    This is called during application startup via the lifespan context manager.
    """
    global _s3_client_instance
    _s3_client_instance = client
    logger.info("S3 client instance set globally")


def get_s3_client_instance() -> AsyncS3Client:
    """Get the global S3 client instance without using dependency injection.

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _s3_client_instance is None:
        raise RuntimeError("S3 client not initialized. Make sure the application lifespan is properly configured.")
    return _s3_client_instance


def get_payment_client() -> StripeCheckoutClient:
    """Dependency injection function for the Stripe checkout client."""
    if _payment_client_instance is None:
        raise RuntimeError("Payment client not initialized. Make sure the application lifespan is properly configured.")
    return _payment_client_instance


def set_payment_client_instance(client: StripeCheckoutClient | None) -> None:
    global _payment_client_instance
    _payment_client_instance = client
    logger.info("Payment client instance set globally")
