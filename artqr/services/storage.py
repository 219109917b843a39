"""
Artifact Storage Service
Archives finished artistic QR images - supports Google Cloud Storage, S3, and local filesystem.
"""

import hashlib
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from artqr.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class ArtifactStoreError(Exception):
    """Raised when an artifact cannot be downloaded or archived."""


class ArtifactStore:
    """Service for durable artifact storage."""

    ARTIFACT_PREFIX = "artistic/"

    def __init__(self, config: Settings = None, http_transport: Optional[httpx.AsyncBaseTransport] = None):
        config = config or default_settings
        self.public_base_url = config.API_BASE_URL.rstrip("/")
        self.http_timeout = config.HTTP_TIMEOUT
        self.http_transport = http_transport

        # Priority: GCS > Local > S3
        self.use_gcs = config.USE_GCS
        self.use_local = config.USE_LOCAL_STORAGE and not self.use_gcs

        if self.use_gcs:
            from google.cloud import storage
            self.gcs_client = storage.Client(project=config.GCP_PROJECT_ID or None)
            self.bucket = self.gcs_client.bucket(config.GCS_BUCKET_ARTIFACTS)
            logger.info(f"[Storage] Using Google Cloud Storage: {config.GCS_BUCKET_ARTIFACTS}")

        elif self.use_local:
            self.base_path = Path(config.LOCAL_STORAGE_PATH)
            self.base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"[Storage] Using local storage: {self.base_path}")

        else:
            import boto3
            from botocore.config import Config
            self.s3 = boto3.client(
                "s3",
                endpoint_url=config.S3_ENDPOINT or None,
                aws_access_key_id=config.S3_ACCESS_KEY,
                aws_secret_access_key=config.S3_SECRET_KEY,
                region_name=config.S3_REGION,
                config=Config(signature_version="s3v4")
            )
            self.s3_bucket = config.S3_BUCKET
            logger.info(f"[Storage] Using S3: {self.s3_bucket}")

    @classmethod
    def artifact_path(cls, image_url: str) -> str:
        """Deterministic object name for a generated image."""
        digest = hashlib.md5(image_url.encode("utf-8")).hexdigest()
        return f"{cls.ARTIFACT_PREFIX}{digest}.png"

    async def upload_from_url(self, image_url: str, metadata: Dict[str, str]) -> str:
        """
        Download a generated image and archive it.

        Re-uploading the same source URL writes the same object, so retries
        after a partial failure are harmless.

        Args:
            image_url: Temporary URL returned by the generation service
            metadata: Source url, style and prompt

        Returns:
            Public URL of the archived artifact
        """
        try:
            data = await self.download_bytes(image_url)
        except Exception as e:
            raise ArtifactStoreError(f"Failed to download generated image: {e}") from e

        path = self.artifact_path(image_url)
        object_metadata = {
            **{k: str(v) for k, v in metadata.items() if v is not None},
            "uploadedAt": datetime.utcnow().isoformat(),
        }

        try:
            await self.upload_bytes(data, path, "image/png", object_metadata)
        except Exception as e:
            logger.error(f"[Storage] Upload failed for {path}: {e}")
            raise ArtifactStoreError(f"Failed to archive artifact: {e}") from e

        public_url = self.get_public_url(path)
        logger.info(f"[Storage] Archived artifact: {public_url}")
        return public_url

    async def upload_bytes(
        self,
        data: bytes,
        path: str,
        content_type: str = "image/png",
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Upload bytes and return the storage path."""
        if self.use_gcs:
            blob = self.bucket.blob(path)
            blob.metadata = metadata or {}
            blob.upload_from_string(data, content_type=content_type)
        elif self.use_local:
            file_path = self.base_path / path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)
        else:
            self.s3.put_object(
                Bucket=self.s3_bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        return path

    async def get_file(self, path: str) -> bytes:
        """Get file contents."""
        if self.use_gcs:
            return self.bucket.blob(path).download_as_bytes()
        elif self.use_local:
            with open(self._local_path(path), "rb") as f:
                return f.read()
        else:
            response = self.s3.get_object(Bucket=self.s3_bucket, Key=path)
            return response["Body"].read()

    def _local_path(self, path: str) -> Path:
        file_path = (self.base_path / path).resolve()
        if self.base_path.resolve() not in file_path.parents:
            raise FileNotFoundError(path)
        return file_path

    async def delete_file(self, path: str) -> bool:
        """
        Delete a single archived file.

        Returns:
            True if the file existed and was removed
        """
        if self.use_gcs:
            from google.api_core.exceptions import NotFound
            try:
                self.bucket.blob(path).delete()
            except NotFound:
                logger.warning(f"[Storage] Nothing to delete at {path}")
                return False
        elif self.use_local:
            file_path = self._local_path(path)
            if not file_path.is_file():
                logger.warning(f"[Storage] Nothing to delete at {path}")
                return False
            file_path.unlink()
        else:
            self.s3.delete_object(Bucket=self.s3_bucket, Key=path)
        logger.info(f"[Storage] Deleted file: {path}")
        return True

    async def list_files(self, prefix: str = ARTIFACT_PREFIX) -> List[str]:
        """Storage paths under a prefix, sorted."""
        if self.use_gcs:
            names = [blob.name for blob in self.gcs_client.list_blobs(self.bucket, prefix=prefix)]
        elif self.use_local:
            root = self.base_path.resolve()
            names = [
                p.relative_to(root).as_posix()
                for p in root.rglob("*")
                if p.is_file() and p.relative_to(root).as_posix().startswith(prefix)
            ]
        else:
            names = []
            paginator = self.s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.s3_bucket, Prefix=prefix):
                names.extend(obj["Key"] for obj in page.get("Contents", []))
        return sorted(names)

    def get_public_url(self, path: str) -> str:
        """Public URL for a stored file, proxied through the API."""
        return f"{self.public_base_url}/files/{path}"

    async def download_bytes(self, url: str) -> bytes:
        """
        Download file bytes from an external http(s) URL or an API proxy URL.

        Args:
            url: http(s) URL or /files/ path

        Returns:
            File bytes
        """
        proxy_prefix = f"{self.public_base_url}/files/"
        if url.startswith(proxy_prefix):
            return await self.get_file(url[len(proxy_prefix):])
        if url.startswith("/files/"):
            return await self.get_file(url.replace("/files/", "", 1))

        async with httpx.AsyncClient(transport=self.http_transport, timeout=self.http_timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
