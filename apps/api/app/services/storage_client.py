"""Storage backend selection and S3 client construction."""

from __future__ import annotations

import os
from urllib.parse import urlparse

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from app.core.config import settings

S3_BACKEND = "s3"
LOCAL_BACKEND = "local"


def get_storage_backend() -> str:
    """Configured backend name; anything other than "s3" means local disk."""
    backend = (settings.STORAGE_BACKEND or LOCAL_BACKEND).strip().lower()
    return S3_BACKEND if backend == S3_BACKEND else LOCAL_BACKEND


def get_local_storage_root() -> str:
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _normalize_endpoint(endpoint_url: str | None) -> str | None:
    if endpoint_url:
        return endpoint_url.rstrip("/")
    return None


def _is_gcs_compat_endpoint(endpoint_url: str | None) -> bool:
    if not endpoint_url:
        return False
    hostname = (urlparse(endpoint_url).hostname or "").lower()
    return hostname == "storage.googleapis.com" or hostname.endswith(".storage.googleapis.com")


def _resolve_region(region: str | None, endpoint_url: str | None) -> str | None:
    selected = region or settings.S3_REGION or None
    if _is_gcs_compat_endpoint(endpoint_url) and (selected is None or selected == "us-east-1"):
        # GCS XML API expects region "auto" for SigV4 signing.
        return "auto"
    return selected


def _build_s3_config() -> Config:
    style = (settings.S3_URL_STYLE or "").strip().lower()
    s3_options = {"addressing_style": style} if style in {"path", "virtual"} else {}
    # Parallel uploads share one client; size the pool to match
    return Config(
        s3=s3_options or None,
        max_pool_connections=max(10, settings.BLOB_MAX_CONCURRENCY * 2),
        retries={"max_attempts": 1, "mode": "standard"},
    )


def get_s3_client(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> BaseClient:
    """Return a configured S3 client (supports S3-compatible endpoints)."""
    normalized_endpoint = _normalize_endpoint(endpoint_url or settings.S3_ENDPOINT_URL)
    return boto3.client(
        "s3",
        region_name=_resolve_region(region, normalized_endpoint),
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=normalized_endpoint,
        config=_build_s3_config(),
    )
