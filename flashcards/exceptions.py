# flashcards/exceptions.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class FlashcardsError(exceptions.APIException):
    """Base for errors rendered as {"kind": ..., "detail": ...}."""
    kind = "internal"

    def payload(self) -> dict:
        return {"kind": self.kind, "detail": str(self.detail)}


class RequestValidationError(FlashcardsError):
    """
    Structural problem with a request, raised before any storage access.
    `errors` is a list of {"field", "index", "path", "message"}; index is the
    position inside the batch, or None for request-level fields.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed."
    kind = "validation"

    def __init__(self, errors: List[dict], detail: Optional[str] = None):
        super().__init__(detail or self.default_detail)
        self.errors = errors

    def payload(self) -> dict:
        body = super().payload()
        body["errors"] = self.errors
        return body


class CandidateValidationError(RequestValidationError):
    """Malformed candidate-actions batch."""


class NotFound(FlashcardsError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."
    kind = "not_found"

    def __init__(self, detail: Optional[str] = None, missing_ids: Optional[Iterable[str]] = None):
        super().__init__(detail or self.default_detail)
        self.missing_ids = [str(i) for i in missing_ids] if missing_ids is not None else None

    def payload(self) -> dict:
        body = super().payload()
        if self.missing_ids is not None:
            body["missing_ids"] = self.missing_ids
        return body


class InternalError(FlashcardsError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error."
    kind = "internal"


class GenerationFailed(FlashcardsError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "AI generation service encountered an error. Please try again."
    kind = "generation_failed"


_DRF_KINDS = {
    exceptions.NotAuthenticated: "unauthenticated",
    exceptions.AuthenticationFailed: "unauthenticated",
    exceptions.PermissionDenied: "forbidden",
    exceptions.ParseError: "validation",
    exceptions.MethodNotAllowed: "method_not_allowed",
    exceptions.NotFound: "not_found",
}


def _leaf_field(path) -> Optional[str]:
    for part in reversed(path):
        if not part.isdigit():
            return part
    return None


def flatten_errors(detail, path=(), index: Optional[int] = None) -> List[dict]:
    """
    Flatten DRF's nested ValidationError.detail into
    {"field", "index", "path", "message"} items. Numeric keys (ListField
    children) and list positions of dicts (ListSerializer children) become
    the batch index.
    """
    out: List[dict] = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            key = str(key)
            if key.isdigit():
                out.extend(flatten_errors(value, path + (key,), int(key)))
            elif key == api_settings.NON_FIELD_ERRORS_KEY:
                out.extend(flatten_errors(value, path, index))
            else:
                out.extend(flatten_errors(value, path + (key,), index))
    elif isinstance(detail, list):
        for i, item in enumerate(detail):
            if isinstance(item, dict):
                if item:
                    out.extend(flatten_errors(item, path + (str(i),), i))
            else:
                out.extend(flatten_errors(item, path, index))
    else:
        out.append({
            "field": _leaf_field(path),
            "index": index,
            "path": ".".join(path) or None,
            "message": str(detail),
        })
    return out


def api_exception_handler(exc, context):
    """DRF EXCEPTION_HANDLER: every failure is rendered as one structured object."""
    if isinstance(exc, FlashcardsError):
        if exc.status_code >= 500:
            logger.error("request failed: kind=%s detail=%s", exc.kind, exc.detail)
        return Response(exc.payload(), status=exc.status_code)

    if isinstance(exc, exceptions.ValidationError):
        errors = flatten_errors(exc.detail)
        return Response(
            {"kind": "validation", "detail": "Validation failed.", "errors": errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is None:
        logger.error("unhandled error in %s", context.get("view").__class__.__name__, exc_info=exc)
        return Response(
            {"kind": "internal", "detail": InternalError.default_detail},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    kind = "error"
    for exc_type, name in _DRF_KINDS.items():
        if isinstance(exc, exc_type):
            kind = name
            break
    detail = response.data.get("detail") if isinstance(response.data, dict) else response.data
    response.data = {"kind": kind, "detail": str(detail)}
    return response
