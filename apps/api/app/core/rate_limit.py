"""Rate limiting configuration for the API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

logger = logging.getLogger(__name__)

# Shared storage (e.g. redis://...) for multi-worker deployments, memory otherwise
STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
)
logger.debug(f"Rate limiter storage: {STORAGE_URI}, defaults: {DEFAULT_LIMITS}")
