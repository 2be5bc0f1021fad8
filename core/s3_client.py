# core/s3_client.py

import boto3
from typing import Tuple

from core.config import settings


def get_s3() -> Tuple[boto3.client, str, str]:
    """
    Get the object storage client, bucket name, and region.
    Returns: (s3_client, bucket_name, region)
    Raises RuntimeError if object storage credentials are missing.
    """
    key = settings.AWS_ACCESS_KEY_ID
    secret = settings.AWS_SECRET_ACCESS_KEY
    bucket = settings.OBJECT_STORAGE_BUCKET
    region = settings.OBJECT_STORAGE_REGION

    if not all([key, secret, bucket]):
        raise RuntimeError("Missing object storage credentials")

    client = boto3.client(
        "s3",
        aws_access_key_id=key,
        aws_secret_access_key=secret,
        region_name=region,
        endpoint_url=settings.OBJECT_STORAGE_ENDPOINT_URL or None,
    )

    return client, bucket, region


def object_storage_configured() -> bool:
    return bool(
        settings.AWS_ACCESS_KEY_ID
        and settings.AWS_SECRET_ACCESS_KEY
        and settings.OBJECT_STORAGE_BUCKET
    )
