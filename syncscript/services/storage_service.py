"""
Object storage for uploaded source files.

S3-compatible backend through boto3. boto3 is blocking, so every call is
pushed to a worker thread to keep the event loop free.
"""

import asyncio
import os
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from syncscript.core.error_handlers import StorageError, StorageNotConfiguredError


@dataclass
class StorageConfig:
    """Storage configuration"""
    bucket: Optional[str] = None
    region: str = "us-east-1"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    expires_in: int = 3600
    
    @property
    def configured(self) -> bool:
        return bool(self.bucket and self.access_key and self.secret_key)


class ObjectStorage:
    """Presigned put/get URLs and raw puts against one bucket"""
    
    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self._client = client
    
    @property
    def configured(self) -> bool:
        return self.config.configured
    
    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.config.region,
                aws_access_key_id=self.config.access_key,
                aws_secret_access_key=self.config.secret_key,
                endpoint_url=self.config.endpoint_url,
                config=BotoConfig(signature_version="s3v4")
            )
        return self._client
    
    def _require_configured(self):
        if not self.configured:
            raise StorageNotConfiguredError(
                "S3 not configured: set AWS_BUCKET_NAME, AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
            )
    
    @staticmethod
    def new_key(file_name: str) -> str:
        safe_name = os.path.basename(file_name.replace("\\", "/")).strip() or "file"
        return f"uploads/{uuid.uuid4()}-{safe_name}"
    
    def file_url(self, key: str) -> str:
        """Stable, unsigned URL stored on the source record"""
        quoted = quote(key)
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.config.bucket}/{quoted}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{quoted}"
    
    def key_from_file_url(self, file_url: str) -> Optional[str]:
        """Recover the object key from a URL produced by ``file_url``"""
        try:
            parsed = urlparse(file_url)
        except ValueError:
            return None
        if parsed.scheme not in ("http", "https"):
            return None
        key = unquote(parsed.path.lstrip("/"))
        # Path-style URLs carry the bucket as the first segment
        if self.config.endpoint_url and self.config.bucket and key.startswith(f"{self.config.bucket}/"):
            key = key[len(self.config.bucket) + 1:]
        return key or None
    
    async def presign_put(self, key: str, content_type: str) -> str:
        self._require_configured()
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self.config.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.config.expires_in
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 presign put failed for {key}: {e}")
            raise StorageError("Failed to generate upload URL")
    
    async def presign_get(self, key: str) -> str:
        self._require_configured()
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.config.bucket, "Key": key},
                ExpiresIn=self.config.expires_in
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 presign get failed for {key}: {e}")
            raise StorageError("Failed to generate view URL")
    
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        self._require_configured()
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.config.bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 put failed for {key}: {e}")
            raise StorageError("Failed to store file")
        logger.info(f"Stored {len(data)} bytes at {key}")
    
    @classmethod
    def from_settings(cls, settings) -> "ObjectStorage":
        return cls(StorageConfig(
            bucket=settings.aws_bucket_name,
            region=settings.aws_region,
            access_key=settings.aws_access_key_id,
            secret_key=settings.aws_secret_access_key,
            endpoint_url=settings.aws_endpoint_url,
            expires_in=settings.presign_expiry_seconds
        ))
