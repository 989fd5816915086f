"""Cloudflare R2 storage client.

Stores uploaded and extracted audio stems in an S3-compatible bucket.
Credentials are read from environment variables so they never appear in
config files.
"""

import os
import re
import time
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

from worship_chords.errors import ServiceError
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)


class StorageError(ServiceError):
    """Object storage operation failed."""


def safe_title(title: str) -> str:
    """Title reduced to lowercase letters, digits and underscores."""
    return re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower()


class R2Client:
    """Client for Cloudflare R2 (S3-compatible) storage.

    Credentials are read from environment variables at construction time:
        WC_R2_ACCESS_KEY_ID
        WC_R2_SECRET_ACCESS_KEY

    Attributes:
        bucket: R2 bucket name
        endpoint_url: R2 endpoint URL
        region: R2 region (typically "auto")
        public_url: Public base URL objects are served from
    """

    def __init__(self, bucket: str, endpoint_url: str, region: str = "auto", public_url: str = ""):
        """Initialize the R2 client.

        Args:
            bucket: R2 bucket name
            endpoint_url: R2 endpoint URL
            region: R2 region
            public_url: Public base URL; defaults to ``{endpoint_url}/{bucket}``

        Raises:
            ValueError: If either credential environment variable is unset
        """
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region
        self.public_url = (public_url or f"{endpoint_url.rstrip('/')}/{bucket}").rstrip("/")

        access_key = os.environ.get("WC_R2_ACCESS_KEY_ID")
        secret_key = os.environ.get("WC_R2_SECRET_ACCESS_KEY")

        if not access_key or not secret_key:
            raise ValueError(
                "R2 credentials not set. "
                "Set WC_R2_ACCESS_KEY_ID and WC_R2_SECRET_ACCESS_KEY environment variables."
            )

        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def url_for(self, key: str) -> str:
        """Public URL of an object key."""
        return f"{self.public_url}/{key}"

    def key_from_url(self, url: str) -> str:
        """Object key for a URL produced by url_for (or an s3:// URL)."""
        if url.startswith("s3://"):
            return self.parse_s3_url(url)[1]
        if url.startswith(self.public_url + "/"):
            return url[len(self.public_url) + 1:]
        return urlparse(url).path.lstrip("/")

    def upload_bytes(self, data: bytes, key: str, content_type: str) -> str:
        """Upload a blob.

        Args:
            data: Object content
            key: Object key within the bucket
            content_type: MIME type stored with the object

        Returns:
            Public URL of the uploaded object

        Raises:
            StorageError: If the upload fails
        """
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except ClientError as e:
            raise StorageError(f"Upload of {key} failed: {e}")
        logger.info(f"Uploaded {key} ({len(data)} bytes)")
        return self.url_for(key)

    def delete_by_url(self, url: str) -> None:
        """Delete the object a URL points to.

        Raises:
            StorageError: If the delete fails
        """
        key = self.key_from_url(url)
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise StorageError(f"Delete of {key} failed: {e}")
        logger.info(f"Deleted {key}")

    def file_exists(self, key: str) -> bool:
        """Check whether an object exists.

        Args:
            key: Full object key

        Returns:
            True if the object exists in the bucket
        """
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False

    @staticmethod
    def vocals_key(title: str, extension: str, timestamp_ms: Optional[int] = None) -> str:
        """Object key for a song's vocals stem.

        Args:
            title: Song title
            extension: File extension without the dot
            timestamp_ms: Upload time in epoch milliseconds (defaults to now)

        Returns:
            Key of the form ``vocals/{timestamp}-{safe_title}-vocals.{ext}``
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"vocals/{timestamp_ms}-{safe_title(title)}-vocals.{extension.lstrip('.')}"

    @staticmethod
    def parse_s3_url(s3_url: str) -> tuple[str, str]:
        """Parse S3 URL into bucket and key.

        Args:
            s3_url: S3 URL like "s3://bucket/vocals/song-vocals.wav"

        Returns:
            Tuple of (bucket, key)

        Raises:
            ValueError: If the URL is not an s3:// URL
        """
        if not s3_url.startswith("s3://"):
            raise ValueError(f"Not an S3 URL: {s3_url}")
        bucket, _, key = s3_url[len("s3://"):].partition("/")
        return bucket, key
