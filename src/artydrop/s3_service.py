"""
Asynchronous S3 Client Service

This module provides an async-first S3/MinIO client that uses aioboto3 for
non-blocking S3 operations. The client is designed to be used as an application
singleton via dependency injection.
"""

import io
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, BinaryIO
from urllib.parse import quote

import aioboto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


class S3Settings(BaseSettings):
    """Configuration for the S3 client"""

    endpoint: str = "localhost:9000"
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    bucket: str = "photos"
    region: str = "us-east-1"
    use_ssl: bool = False
    signature_version: str = "s3v4"
    # Base URL under which objects are publicly readable, e.g. a CDN in front of the bucket.
    # Defaults to "<endpoint>/<bucket>".
    public_url: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def endpoint_url(self) -> str:
        """Endpoint with protocol, added from use_ssl when missing."""
        if not self.endpoint.startswith(("http://", "https://")):
            protocol = "https" if self.use_ssl else "http"
            return f"{protocol}://{self.endpoint}"
        return self.endpoint


@lru_cache(maxsize=1)
def get_s3_settings() -> S3Settings:
    """Get cached S3 settings."""
    return S3Settings()


class AsyncS3Client:
    """Asynchronous S3 Client

    This client maintains a shared aioboto3.Session that is created once and
    reused for all operations. Individual S3 clients are created per operation
    using context managers to ensure proper resource cleanup.
    """

    def __init__(self, settings: S3Settings | None = None):
        self.settings = settings or get_s3_settings()
        self._session: aioboto3.Session | None = None
        self._endpoint_url = self.settings.endpoint_url
        self._config = Config(
            signature_version=self.settings.signature_version,
            max_pool_connections=50,
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=10,
            read_timeout=60,
            s3={"addressing_style": "path"},
        )
        self._transfer_config = TransferConfig(
            multipart_threshold=8 * 1024 * 1024,  # 8MB threshold before multipart kicks in
            multipart_chunksize=4 * 1024 * 1024,
            max_concurrency=10,
            use_threads=True,
        )
        logger.info(f"AsyncS3Client initialized: endpoint={self._endpoint_url}, bucket={self.settings.bucket}, region={self.settings.region}")

    @property
    def session(self) -> aioboto3.Session:
        """Get or create the shared aioboto3 session."""
        if self._session is None:
            self._session = aioboto3.Session(
                aws_access_key_id=self.settings.access_key,
                aws_secret_access_key=self.settings.secret_key,
                region_name=self.settings.region,
            )
        return self._session

    def _get_s3_client(self) -> "S3Client":
        """Get configured S3 client context manager.

        Usage: async with self._get_s3_client() as s3:
        """
        return self.session.client("s3", endpoint_url=self._endpoint_url, config=self._config)

    async def upload_fileobj(
        self,
        file_obj: BinaryIO | bytes,
        key: str,
        content_type: str | None = None,
    ) -> str:
        """Upload a file object to S3.

        Args:
            file_obj: File-like object or bytes to upload
            key: S3 object key
            content_type: Optional Content-Type header (e.g., 'image/jpeg')

        Returns:
            S3 object path

        Raises:
            Exception: If upload fails
        """
        if isinstance(file_obj, bytes):
            file_obj = io.BytesIO(file_obj)
        elif hasattr(file_obj, "seek"):
            file_obj.seek(0)

        extra_args: dict[str, str] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.upload_fileobj(
                    file_obj,
                    self.settings.bucket,
                    key,
                    ExtraArgs=extra_args if extra_args else None,
                    Config=self._transfer_config,
                )
            logger.info(f"Successfully uploaded object: {key}")
            return f"/{self.settings.bucket}/{key}"
        except Exception as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise

    async def download_fileobj(self, key: str) -> bytes:
        """Download a file from S3.

        Args:
            key: S3 object key

        Returns:
            File contents as bytes

        Raises:
            Exception: If download fails
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                response = await s3.get_object(Bucket=self.settings.bucket, Key=key)
                body = response.get("Body")
                if body is None:
                    raise ValueError(f"No body in response for key {key}")
                content: bytes = await body.read()
            logger.info(f"Successfully downloaded object: {key}")
            return content
        except Exception as e:
            logger.error(f"Failed to download object {key}: {e}")
            raise

    async def delete_file(self, key: str) -> None:
        """Delete an object from the photos bucket.

        Raises:
            Exception: If deletion fails
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.delete_object(Bucket=self.settings.bucket, Key=key)
            logger.info(f"Successfully deleted object: {key}")
        except Exception as e:
            logger.error(f"Failed to delete object {key}: {e}")
            raise

    def public_url(self, key: str) -> str:
        """Public, non-expiring URL of an object in the photos bucket."""
        base = self.settings.public_url or f"{self._endpoint_url}/{self.settings.bucket}"
        return f"{base.rstrip('/')}/{quote(key)}"

    async def close(self) -> None:
        """Close the session and clean up resources."""
        if self._session is not None:
            logger.info("Closing AsyncS3Client session")
            self._session = None
