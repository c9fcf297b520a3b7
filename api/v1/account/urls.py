"""
URL configuration for account API endpoints.
"""

from django.urls import path

from api.v1.account import views

urlpatterns = [
    path(
        "schedule-deletion",
        views.ScheduleAccountDeletionView.as_view(),
        name="schedule-account-deletion",
    ),
    path(
        "cancel-deletion",
        views.CancelAccountDeletionView.as_view(),
        name="cancel-account-deletion",
    ),
]
