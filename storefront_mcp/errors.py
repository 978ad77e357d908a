"""Error taxonomy shared by the data layer, the Sheets client and the tools."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class StorefrontError(RuntimeError):
    """Base error with structured metadata for tool responses."""

    default_code = "STOREFRONT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.status = status
        self.details = details or {}


class ConfigError(StorefrontError):
    """A required setting (e.g. the spreadsheet id) is missing or invalid."""

    default_code = "CONFIG_ERROR"


class ValidationError(StorefrontError, ValueError):
    """Input rejected before any store call."""

    default_code = "VALIDATION_ERROR"


class NotFound(StorefrontError, LookupError):
    """A keyed lookup (dealer, lead) found nothing."""

    default_code = "NOT_FOUND"


class StoreError(StorefrontError):
    """The backing spreadsheet call failed (network, permission, quota, bounds)."""

    default_code = "STORE_ERROR"


class LayoutOverflowError(StoreError):
    """A logical table would grow into the rows reserved for its neighbour."""

    default_code = "LAYOUT_OVERFLOW"


def error_payload(exc: StorefrontError) -> str:
    payload: dict[str, Any] = {"ok": False, "error": str(exc), "code": exc.code}
    if exc.details:
        payload["details"] = exc.details
    return json.dumps(payload, default=str)


def log_and_return_tool_error(*, tool_name: str, exc: Exception, user_message: str) -> str:
    """Log an unexpected tool failure and return a safe JSON error payload.

    Same contract as ``cip_protocol.orchestration.errors.log_and_return_tool_error``;
    kept local so the server does not depend on the whole LLM orchestration
    package for one helper.
    """
    if isinstance(exc, StoreError):
        logger.error("%s failed against the backing store: %s", tool_name, exc)
    else:
        logger.exception("%s failed", tool_name, exc_info=exc)
    return json.dumps({"ok": False, "error": user_message, "code": "INTERNAL_ERROR"})
