"""Cliente S3-compatible para Cloudflare R2."""
from __future__ import annotations

import boto3
from botocore.config import Config

from notehub.core.config import settings


def get_s3_client():
    cfg = Config(signature_version="s3v4", s3={"addressing_style": "path"})
    return boto3.client(
        "s3",
        aws_access_key_id=settings.r2_access_key,
        aws_secret_access_key=settings.r2_secret_key,
        endpoint_url=settings.r2_endpoint,
        region_name=settings.r2_region or "auto",
        config=cfg,
    )
