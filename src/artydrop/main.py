import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic_settings import BaseSettings, SettingsConfigDict

from artydrop.api.checkout import router as checkout_router
from artydrop.api.gallery import router as gallery_router
from artydrop.dependencies import get_s3_client_instance, set_payment_client_instance, set_s3_client_instance
from artydrop.logging_config import configure_logging
from artydrop.metrics import setup_metrics
from artydrop.payments import StripeCheckoutClient
from artydrop.s3_service import AsyncS3Client


class AppSettings(BaseSettings):
    log_level: str = "INFO"
    # None picks colors when stdout is a terminal
    log_colors: bool | None = None
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")


settings = AppSettings()

# uvicorn imports this module when starting the app, so logging is configured before it serves
configure_logging(level=settings.log_level, colored=settings.log_colors)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown.

    Creates the S3 and Stripe clients on startup and releases them on shutdown.
    """
    logger.info("Starting up application...")
    try:
        set_s3_client_instance(AsyncS3Client())
        set_payment_client_instance(StripeCheckoutClient())
        logger.info("Provider clients initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize provider clients: {e}")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await get_s3_client_instance().close()
        logger.info("S3 client closed successfully")
    except Exception as e:
        logger.error(f"Error during S3 client shutdown: {e}")
    set_s3_client_instance(None)
    set_payment_client_instance(None)


app = FastAPI(redoc_url=None, redirect_slashes=False, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(gallery_router)
app.include_router(checkout_router)

setup_metrics(app)


@app.get("/")
def read_root():
    return {"message": "Hello from artydrop!"}
