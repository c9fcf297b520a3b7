"""
Account API views.

Scheduling deletion starts a grace period during which the tenant can
still change their mind.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api import dependencies
from api.v1.account.serializers import AccountDeletionSerializer
from api.v1.subscription.views import run_command
from api.v1.webhooks.serializers import ErrorResponseSerializer
from core.instrumentation import get_tracer
from licenses.application.commands.account_deletion import (
    CancelAccountDeletionCommand,
    ScheduleAccountDeletionCommand,
)

tracer = get_tracer(__name__)

ERROR_RESPONSES = {
    400: ErrorResponseSerializer,
    401: ErrorResponseSerializer,
    404: ErrorResponseSerializer,
}


class ScheduleAccountDeletionView(APIView):
    """View for scheduling account deletion."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="schedule_account_deletion",
        summary="Schedule Account Deletion",
        description="Mark the caller's account for deletion after the grace period.",
        tags=["Account"],
        request=None,
        responses={200: AccountDeletionSerializer, **ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Schedule account deletion."""
        return async_to_sync(self._handle_schedule_deletion)(request)

    async def _handle_schedule_deletion(self, request: Request) -> Response:
        """Async handler for schedule account deletion."""
        with tracer.start_as_current_span("schedule_account_deletion") as span:
            span.set_attribute("operation", "schedule_account_deletion")
            caller = dependencies.resolve_caller(request)

            handler = dependencies.schedule_account_deletion_handler()
            result = await run_command(
                span,
                "schedule_deletion",
                handler.handle(ScheduleAccountDeletionCommand(caller=caller)),
            )

            return Response(AccountDeletionSerializer(result).data, status=status.HTTP_200_OK)


class CancelAccountDeletionView(APIView):
    """View for cancelling a scheduled account deletion."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="cancel_account_deletion",
        summary="Cancel Account Deletion",
        description="Withdraw a scheduled account deletion.",
        tags=["Account"],
        request=None,
        responses={200: AccountDeletionSerializer, **ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Cancel account deletion."""
        return async_to_sync(self._handle_cancel_deletion)(request)

    async def _handle_cancel_deletion(self, request: Request) -> Response:
        """Async handler for cancel account deletion."""
        with tracer.start_as_current_span("cancel_account_deletion") as span:
            span.set_attribute("operation", "cancel_account_deletion")
            caller = dependencies.resolve_caller(request)

            handler = dependencies.cancel_account_deletion_handler()
            result = await run_command(
                span,
                "cancel_deletion",
                handler.handle(CancelAccountDeletionCommand(caller=caller)),
            )

            return Response(AccountDeletionSerializer(result).data, status=status.HTTP_200_OK)
