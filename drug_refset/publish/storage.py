"""Upload of compressed artifacts to Cloudflare R2 (S3 API).

Objects are write-once: a key that already exists is never overwritten,
which makes re-running the pipeline for a published release a no-op.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def make_r2_client(access_key_id: str, secret_access_key: str, endpoint_url: str):
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
    )


def object_key(prefix: str, version: str, filename: str) -> str:
    return str(PurePosixPath(prefix, version, filename))


def object_exists(client, bucket: str, key: str) -> bool:
    try:
        client.head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
            return False
        raise
    return True


def upload_if_missing(client, bucket: str, key: str, brotli_file: Path) -> bool:
    """Upload ``brotli_file`` as a br-encoded JSON object under ``key``.

    Returns True if an upload happened.
    """
    if object_exists(client, bucket, key):
        logger.info("%s already exists in R2 so skipping...", key)
        return False
    logger.info("%s does not exist in R2. Uploading...", key)
    client.put_object(
        Bucket=bucket,
        Key=key,
        Body=brotli_file.read_bytes(),
        ContentEncoding="br",
        ContentType="application/json",
    )
    logger.info("Uploaded.")
    return True
