"""
Subscription API views.

These endpoints are used by POS staff to:
- Inspect the live subscription and invoices
- Cancel, reactivate or change the plan of the subscription
- Open the hosted billing portal

The caller is resolved from the staff session; no request carries an email.
"""

from typing import Any, Awaitable

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api import dependencies
from api.exceptions import error_response
from api.v1.subscription.serializers import (
    CancellationResultSerializer,
    ChangePlanRequestSerializer,
    InvoiceListSerializer,
    PlanChangeResultSerializer,
    PortalSessionSerializer,
    ReactivationResultSerializer,
    SubscriptionStatusSerializer,
)
from api.v1.webhooks.serializers import ErrorResponseSerializer
from core.domain.exceptions import DomainException
from core.instrumentation import Status, StatusCode, get_tracer
from core.metrics import subscription_commands_total
from licenses.application.commands.cancel_subscription import CancelSubscriptionCommand
from licenses.application.commands.change_plan import ChangePlanCommand
from licenses.application.commands.create_portal_session import CreatePortalSessionCommand
from licenses.application.commands.reactivate_subscription import (
    ReactivateSubscriptionCommand,
)
from licenses.application.queries.get_subscription import GetSubscriptionQuery
from licenses.application.queries.list_invoices import ListInvoicesQuery

tracer = get_tracer(__name__)

COMMON_ERROR_RESPONSES = {
    401: ErrorResponseSerializer,
    404: ErrorResponseSerializer,
    502: ErrorResponseSerializer,
}


async def run_command(span, command_name: str, call: Awaitable[Any]) -> Any:
    """
    Await a handler call, recording its outcome on the span and in metrics.

    Domain exceptions are re-raised for the API exception handler.
    """
    try:
        result = await call
    except DomainException as e:
        subscription_commands_total.labels(command=command_name, outcome=e.code).inc()
        span.set_attribute("error", e.code)
        span.set_status(Status(StatusCode.ERROR, e.message))
        raise
    subscription_commands_total.labels(command=command_name, outcome="success").inc()
    span.set_status(Status(StatusCode.OK))
    return result


def _set_caller_attributes(span, caller) -> None:
    if caller.staff_id:
        span.set_attribute("staff.id", caller.staff_id)


class SubscriptionStatusView(APIView):
    """View for the caller's live subscription."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="get_subscription",
        summary="Get Subscription",
        description=(
            "Return the caller's license with the live subscription from the payment "
            "provider. When the provider is unreachable the local license data is "
            "returned with fallback=true."
        ),
        tags=["Subscription"],
        responses={200: SubscriptionStatusSerializer, **COMMON_ERROR_RESPONSES},
    )
    def get(self, request: Request) -> Response:
        """Get subscription status."""
        return async_to_sync(self._handle_get_subscription)(request)

    async def _handle_get_subscription(self, request: Request) -> Response:
        """Async handler for get subscription."""
        with tracer.start_as_current_span("get_subscription") as span:
            span.set_attribute("operation", "get_subscription")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            handler = dependencies.get_subscription_handler()
            result = await run_command(
                span, "get_subscription", handler.handle(GetSubscriptionQuery(caller=caller))
            )

            span.set_attribute("subscription.fallback", result.fallback)
            return Response(SubscriptionStatusSerializer(result).data, status=status.HTTP_200_OK)


class CancelSubscriptionView(APIView):
    """View for cancelling the subscription."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="cancel_subscription",
        summary="Cancel Subscription",
        description=(
            "Within the cooling period the subscription is cancelled immediately and the "
            "latest payment refunded. Afterwards it is cancelled at the end of the "
            "current billing period."
        ),
        tags=["Subscription"],
        request=None,
        responses={200: CancellationResultSerializer, **COMMON_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Cancel subscription."""
        return async_to_sync(self._handle_cancel)(request)

    async def _handle_cancel(self, request: Request) -> Response:
        """Async handler for cancel subscription."""
        with tracer.start_as_current_span("cancel_subscription") as span:
            span.set_attribute("operation", "cancel_subscription")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            handler = dependencies.cancel_subscription_handler()
            result = await run_command(
                span, "cancel", handler.handle(CancelSubscriptionCommand(caller=caller))
            )

            span.set_attribute("cancellation.mode", result.mode)
            span.set_attribute("cancellation.refunded", result.refunded)
            return Response(CancellationResultSerializer(result).data, status=status.HTTP_200_OK)


class ChangePlanView(APIView):
    """View for switching between monthly and annual plans."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="change_plan",
        summary="Change Plan",
        description="Move the subscription to another plan with proration.",
        tags=["Subscription"],
        request=ChangePlanRequestSerializer,
        responses={
            200: PlanChangeResultSerializer,
            400: ErrorResponseSerializer,
            **COMMON_ERROR_RESPONSES,
        },
    )
    def post(self, request: Request) -> Response:
        """Change plan."""
        return async_to_sync(self._handle_change_plan)(request)

    async def _handle_change_plan(self, request: Request) -> Response:
        """Async handler for change plan."""
        with tracer.start_as_current_span("change_plan") as span:
            span.set_attribute("operation", "change_plan")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            serializer = ChangePlanRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_attribute("error", "validation_failed")
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return error_response(
                    "VALIDATION_ERROR", serializer.errors, status.HTTP_400_BAD_REQUEST
                )

            target_plan = serializer.validated_data["target_plan"]
            span.set_attribute("plan.target", target_plan)

            handler = dependencies.change_plan_handler()
            result = await run_command(
                span,
                "change_plan",
                handler.handle(ChangePlanCommand(caller=caller, target_plan=target_plan)),
            )

            return Response(PlanChangeResultSerializer(result).data, status=status.HTTP_200_OK)


class ReactivateSubscriptionView(APIView):
    """View for undoing a pending cancellation."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="reactivate_subscription",
        summary="Reactivate Subscription",
        description="Clear a pending end-of-period cancellation.",
        tags=["Subscription"],
        request=None,
        responses={
            200: ReactivationResultSerializer,
            400: ErrorResponseSerializer,
            **COMMON_ERROR_RESPONSES,
        },
    )
    def post(self, request: Request) -> Response:
        """Reactivate subscription."""
        return async_to_sync(self._handle_reactivate)(request)

    async def _handle_reactivate(self, request: Request) -> Response:
        """Async handler for reactivate subscription."""
        with tracer.start_as_current_span("reactivate_subscription") as span:
            span.set_attribute("operation", "reactivate_subscription")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            handler = dependencies.reactivate_subscription_handler()
            result = await run_command(
                span, "reactivate", handler.handle(ReactivateSubscriptionCommand(caller=caller))
            )

            return Response(ReactivationResultSerializer(result).data, status=status.HTTP_200_OK)


class ListInvoicesView(APIView):
    """View for the caller's recent invoices."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="list_invoices",
        summary="List Invoices",
        description="Return the last 12 invoices of the caller, amounts in major units.",
        tags=["Subscription"],
        responses={200: InvoiceListSerializer, **COMMON_ERROR_RESPONSES},
    )
    def get(self, request: Request) -> Response:
        """List invoices."""
        return async_to_sync(self._handle_list_invoices)(request)

    async def _handle_list_invoices(self, request: Request) -> Response:
        """Async handler for list invoices."""
        with tracer.start_as_current_span("list_invoices") as span:
            span.set_attribute("operation", "list_invoices")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            handler = dependencies.list_invoices_handler()
            result = await run_command(
                span, "list_invoices", handler.handle(ListInvoicesQuery(caller=caller))
            )

            span.set_attribute("invoices.count", len(result.invoices))
            return Response(InvoiceListSerializer(result).data, status=status.HTTP_200_OK)


class BillingPortalView(APIView):
    """View for opening the hosted billing portal."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="create_billing_portal_session",
        summary="Billing Portal",
        description="Create a billing portal session and return its URL.",
        tags=["Subscription"],
        request=None,
        responses={200: PortalSessionSerializer, **COMMON_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Create billing portal session."""
        return async_to_sync(self._handle_portal)(request)

    async def _handle_portal(self, request: Request) -> Response:
        """Async handler for billing portal."""
        with tracer.start_as_current_span("create_billing_portal_session") as span:
            span.set_attribute("operation", "create_billing_portal_session")
            caller = dependencies.resolve_caller(request)
            _set_caller_attributes(span, caller)

            handler = dependencies.create_portal_session_handler()
            result = await run_command(
                span, "portal", handler.handle(CreatePortalSessionCommand(caller=caller))
            )

            return Response(PortalSessionSerializer(result).data, status=status.HTTP_200_OK)
