"""Structured logging helpers (no client contact details or comment text)."""

import logging
from typing import Any

from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_log_context(
    *,
    user_id: str | None = None,
    client_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    stage: str | None = None,
) -> dict[str, Any]:
    """Return a log `extra` dict containing only the provided identifiers."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if client_id:
        context["client_id"] = str(client_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if stage:
        context["stage"] = stage
    return context
