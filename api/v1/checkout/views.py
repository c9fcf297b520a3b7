"""
Checkout API views.

Opens a hosted checkout page for a new subscription. The buyer has no
license yet, so the endpoint is public.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api import dependencies
from api.exceptions import error_response
from api.v1.checkout.serializers import CheckoutRequestSerializer, CheckoutSessionSerializer
from api.v1.subscription.views import run_command
from api.v1.webhooks.serializers import ErrorResponseSerializer
from core.instrumentation import Status, StatusCode, get_tracer
from licenses.application.commands.create_checkout_session import CreateCheckoutSessionCommand

tracer = get_tracer(__name__)


class CreateCheckoutSessionView(APIView):
    """View for starting a subscription checkout."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="create_checkout_session",
        summary="Create Checkout Session",
        description="Open a hosted checkout page for the chosen plan.",
        tags=["Checkout"],
        request=CheckoutRequestSerializer,
        responses={
            200: CheckoutSessionSerializer,
            400: ErrorResponseSerializer,
            409: ErrorResponseSerializer,
            502: ErrorResponseSerializer,
        },
    )
    def post(self, request: Request) -> Response:
        """Create checkout session."""
        return async_to_sync(self._handle_create_checkout_session)(request)

    async def _handle_create_checkout_session(self, request: Request) -> Response:
        """Async handler for create checkout session."""
        with tracer.start_as_current_span("create_checkout_session") as span:
            span.set_attribute("operation", "create_checkout_session")

            serializer = CheckoutRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_attribute("error", "validation_failed")
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return error_response(
                    "VALIDATION_ERROR", serializer.errors, status.HTTP_400_BAD_REQUEST
                )

            plan = serializer.validated_data["plan"]
            span.set_attribute("plan.target", plan)

            handler = dependencies.create_checkout_session_handler()
            result = await run_command(
                span,
                "checkout",
                handler.handle(
                    CreateCheckoutSessionCommand(
                        email=serializer.validated_data["email"],
                        plan=plan,
                    )
                ),
            )

            return Response(CheckoutSessionSerializer(result).data, status=status.HTTP_200_OK)
