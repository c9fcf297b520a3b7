"""
API exception handlers.

This module provides custom exception handling for REST API responses.
"""

import logging
from typing import Any, Dict, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.domain.exceptions import (
    AuthenticationRequiredError,
    DomainException,
    LicenseAlreadyActiveError,
    LicenseNotFoundError,
    NoActiveSubscriptionError,
    PaymentProviderError,
)
from core.metrics import errors_total

logger = logging.getLogger(__name__)


def status_for_domain_exception(exc: DomainException) -> int:
    """Map a domain exception to its HTTP status code."""
    if isinstance(exc, AuthenticationRequiredError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, (LicenseNotFoundError, NoActiveSubscriptionError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, LicenseAlreadyActiveError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, PaymentProviderError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


def error_response(code: str, message: str, status_code: int) -> Response:
    """Build the standard error envelope."""
    return Response({"error": {"code": code, "message": message}}, status=status_code)


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """Custom exception handler for REST API."""
    trace_id = _get_trace_id(context)
    endpoint = _get_endpoint(context)

    if isinstance(exc, DomainException):
        response = _handle_domain_exception(exc, trace_id)
        errors_total.labels(error_type=exc.code, endpoint=endpoint).inc()
        if trace_id:
            response["X-Trace-ID"] = trace_id
        return response

    if isinstance(exc, APIException):
        response = exception_handler(exc, context)
        if response:
            code = (
                exc.default_code.upper().replace("-", "_")
                if hasattr(exc, "default_code")
                else "API_ERROR"
            )
            detail = response.data.get("detail", exc.default_detail) if isinstance(
                response.data, dict
            ) else response.data
            response.data = {"error": {"code": code, "message": detail}}
            if trace_id:
                response["X-Trace-ID"] = trace_id
            return response

    if isinstance(exc, Http404):
        response = error_response("NOT_FOUND", "Resource not found", status.HTTP_404_NOT_FOUND)
        if trace_id:
            response["X-Trace-ID"] = trace_id
        return response

    errors_total.labels(error_type=type(exc).__name__, endpoint=endpoint).inc()
    return _handle_unexpected_exception(exc, context, trace_id)


def _get_trace_id(context: Dict[str, Any]) -> Optional[str]:
    """Extract trace ID from request context."""
    request = context.get("request")
    if not request:
        return None
    return getattr(request, "trace_id", getattr(request, "correlation_id", None))


def _get_endpoint(context: Dict[str, Any]) -> str:
    request = context.get("request")
    match = getattr(request, "resolver_match", None) if request else None
    if match is not None and match.route:
        return match.route
    return "unmatched"


def _handle_domain_exception(exc: DomainException, trace_id: Optional[str]) -> Response:
    """Handle domain-specific exceptions."""
    status_code = status_for_domain_exception(exc)

    if status_code >= 500:
        logger.error("Domain exception: %s - %s", exc.code, exc.message, extra={"trace_id": trace_id})
    else:
        logger.warning(
            "Domain exception: %s - %s", exc.code, exc.message, extra={"trace_id": trace_id}
        )
    return error_response(exc.code, exc.message, status_code)


def _handle_unexpected_exception(
    exc: Exception, context: Dict[str, Any], trace_id: Optional[str]
) -> Response:
    """Handle unexpected or untracked exceptions."""
    logger.error("Unexpected error: %s", exc, extra={"trace_id": trace_id}, exc_info=True)
    response = exception_handler(exc, context)
    if not response:
        response = error_response(
            "INTERNAL_ERROR",
            "An internal error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    else:
        response.data = {
            "error": {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}
        }
    if trace_id:
        response["X-Trace-ID"] = trace_id
    return response
