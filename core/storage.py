#!/usr/bin/env python3
"""
Artifact storage backends.

S3ArtifactStore is the production backend; LocalArtifactStore writes to a
directory and is used for development and tests. Every backend failure is
raised as DownstreamError so the workflow engine can fail the owning
instance.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config_loader import StorageConfig
from core.errors import ConfigurationError, DownstreamError

logger = logging.getLogger(__name__)


class ArtifactStore(ABC):
    """Abstract byte store addressed by relative paths."""

    @abstractmethod
    def put_artifact(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        """Store bytes under path. Returns the stored key."""
        pass

    @abstractmethod
    def get_artifact(self, path: str) -> bytes:
        pass

    @abstractmethod
    def presigned_url(self, path: str, expires_in: int) -> str:
        """Time-limited download link for a stored artifact."""
        pass


class S3ArtifactStore(ArtifactStore):
    def __init__(self, bucket: str, region: Optional[str] = None, prefix: str = "", client=None):
        if not bucket:
            raise ConfigurationError("S3 bucket name is required")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.s3_client = client or boto3.client('s3', region_name=region)
        logger.info(f"S3 artifact store initialized with bucket: {self.bucket}")

    def _key(self, path: str) -> str:
        return f"{self.prefix}/{path}" if self.prefix else path

    def put_artifact(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        key = self._key(path)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise DownstreamError(f"Failed to store artifact {key}: {e}") from e
        logger.info(f"Uploaded to S3: {key}")
        return key

    def get_artifact(self, path: str) -> bytes:
        key = self._key(path)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to get artifact from S3: {e}")
            raise DownstreamError(f"Failed to read artifact {key}: {e}") from e

    def presigned_url(self, path: str, expires_in: int) -> str:
        key = self._key(path)
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            raise DownstreamError(f"Failed to presign {key}: {e}") from e


class LocalArtifactStore(ArtifactStore):
    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if self.base_dir not in target.parents:
            raise DownstreamError(f"Artifact path escapes storage directory: {path}")
        return target

    def put_artifact(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(path)
        try:
            os.makedirs(target.parent, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise DownstreamError(f"Failed to store artifact {path}: {e}") from e
        logger.info(f"Stored artifact: {target}")
        return path

    def get_artifact(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as e:
            raise DownstreamError(f"Failed to read artifact {path}: {e}") from e

    def presigned_url(self, path: str, expires_in: int) -> str:
        return self._resolve(path).as_uri()


def create_artifact_store(config: StorageConfig) -> ArtifactStore:
    if config.backend == "s3":
        return S3ArtifactStore(bucket=config.bucket, region=config.region, prefix=config.prefix)
    return LocalArtifactStore(config.local_dir)
