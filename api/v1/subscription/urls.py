"""
URL configuration for subscription API endpoints.
"""

from django.urls import path

from api.v1.subscription import views

urlpatterns = [
    path(
        "",
        views.SubscriptionStatusView.as_view(),
        name="subscription-status",
    ),
    path(
        "cancel",
        views.CancelSubscriptionView.as_view(),
        name="cancel-subscription",
    ),
    path(
        "change-plan",
        views.ChangePlanView.as_view(),
        name="change-plan",
    ),
    path(
        "reactivate",
        views.ReactivateSubscriptionView.as_view(),
        name="reactivate-subscription",
    ),
    path(
        "invoices",
        views.ListInvoicesView.as_view(),
        name="list-invoices",
    ),
    path(
        "portal",
        views.BillingPortalView.as_view(),
        name="billing-portal",
    ),
]
