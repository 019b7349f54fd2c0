"""Cloudflare R2 storage client (S3-compatible) for uploaded documents.

Implements a minimal interface for storing, reading and deleting bytes.
Objects are served from the bucket's public domain, so the durable URL of a
key is `<r2_public_base_url>/<key>`.
"""
from __future__ import annotations
import boto3
from botocore.client import Config
from botocore.exceptions import ClientError
from bridge.utils.logging import logger


class CloudflareR2Storage:
    def __init__(self, *, access_key_id: str, secret_access_key: str, endpoint_url: str, bucket: str):
        self.bucket = bucket
        # region_name can be 'auto' for R2; disable signature version guessing
        self.client = boto3.client(
            's3',
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name='auto',
            config=Config(signature_version='s3v4')
        )

    def store_bytes(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes at key."""
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
            logger.info("Stored object in R2", extra={"bucket": self.bucket, "key": key, "size": len(data)})
        except Exception:
            logger.exception("Failed to store bytes in R2", extra={"bucket": self.bucket, "key": key})
            raise

    def get_bytes(self, key: str) -> bytes:
        """Get object bytes from R2."""
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
            data = resp['Body'].read()
            logger.info("Retrieved object from R2", extra={"bucket": self.bucket, "key": key})
            return data
        except ClientError as e:
            if e.response['Error']['Code'] == 'NoSuchKey':
                logger.error("Object not found in R2", extra={"bucket": self.bucket, "key": key})
                raise FileNotFoundError(f"Object not found in R2: {key}") from e
            logger.exception("Failed to retrieve object from R2", extra={"bucket": self.bucket, "key": key})
            raise

    def delete(self, key: str) -> None:
        """Delete object from R2. Gracefully handles non-existent objects."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info("Deleted object from R2", extra={"bucket": self.bucket, "key": key})
        except ClientError as e:
            if e.response['Error']['Code'] == 'NoSuchKey':
                logger.warning("Attempted to delete non-existent object from R2", extra={"bucket": self.bucket, "key": key})
            else:
                logger.exception("Failed to delete object from R2", extra={"bucket": self.bucket, "key": key})
                raise

    def exists(self, key: str) -> bool:
        """Check if an object exists in R2."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey'):
                return False
            logger.exception("Failed to check if object exists in R2", extra={"bucket": self.bucket, "key": key})
            raise


__all__ = ["CloudflareR2Storage"]
