"""
Webhook API views.

Stripe delivers subscription lifecycle events here. The raw body is
verified against the ``Stripe-Signature`` header before anything is
decoded, then handed to the reconciliation handler.
"""

import logging

from asgiref.sync import async_to_sync
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api import dependencies
from api.exceptions import error_response, status_for_domain_exception
from api.v1.webhooks.serializers import ErrorResponseSerializer, WebhookAckSerializer
from core.domain.exceptions import DomainException
from core.instrumentation import Status, StatusCode, get_tracer
from core.metrics import errors_total
from licenses.application.commands.reconcile_event import ReconcileEventCommand

logger = logging.getLogger(__name__)

tracer = get_tracer(__name__)

SIGNATURE_HEADER = "Stripe-Signature"


class StripeWebhookView(APIView):
    """View receiving Stripe webhook deliveries."""

    authentication_classes = []
    permission_classes = [AllowAny]
    parser_classes = []

    @extend_schema(
        operation_id="stripe_webhook",
        summary="Stripe Webhook",
        description=(
            "Verify and apply a Stripe event. Duplicates and irrelevant events are "
            "acknowledged with 200. Any non-2xx response makes Stripe retry the delivery."
        ),
        tags=["Webhooks"],
        request=OpenApiTypes.OBJECT,
        parameters=[
            OpenApiParameter(
                name=SIGNATURE_HEADER,
                location=OpenApiParameter.HEADER,
                required=True,
                description="Stripe signature header (t=...,v1=...)",
            ),
        ],
        responses={
            200: WebhookAckSerializer,
            400: ErrorResponseSerializer,
            500: ErrorResponseSerializer,
        },
    )
    def post(self, request: Request) -> Response:
        """Receive a Stripe event."""
        return async_to_sync(self._handle_webhook)(request)

    async def _handle_webhook(self, request: Request) -> Response:
        """Async handler for webhook deliveries."""
        with tracer.start_as_current_span("stripe_webhook") as span:
            span.set_attribute("operation", "stripe_webhook")

            try:
                payload = dependencies.get_signature_verifier().verify(
                    request.body, request.headers.get(SIGNATURE_HEADER)
                )
                if isinstance(payload, dict):
                    span.set_attribute("event.id", str(payload.get("id", "")))
                    span.set_attribute("event.type", str(payload.get("type", "")))

                handler = dependencies.reconcile_event_handler()
                result = await handler.handle(ReconcileEventCommand(payload=payload))
            except DomainException as e:
                logger.warning(f"Rejected webhook delivery: {e.code} - {e.message}")
                errors_total.labels(error_type=e.code, endpoint="webhooks/stripe").inc()
                span.set_attribute("error", e.code)
                span.set_status(Status(StatusCode.ERROR, e.message))
                return error_response(e.code, e.message, status_for_domain_exception(e))
            except Exception as e:
                logger.error(f"Webhook processing failed: {e}", exc_info=True)
                errors_total.labels(error_type=type(e).__name__, endpoint="webhooks/stripe").inc()
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                return error_response(
                    "INTERNAL_ERROR",
                    "Webhook processing failed",
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                )

            span.set_attribute("outcome", result.outcome)
            span.set_attribute("duplicate", result.duplicate)
            span.set_status(Status(StatusCode.OK))

            return Response(WebhookAckSerializer(result).data, status=status.HTTP_200_OK)
