"""
URL configuration for checkout API endpoints.
"""

from django.urls import path

from api.v1.checkout import views

urlpatterns = [
    path("", views.CreateCheckoutSessionView.as_view(), name="create-checkout-session"),
]
