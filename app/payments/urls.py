"""
URL configuration for the payments app.

Routes:
    - POST /initialize/ - Start a provider transaction
    - GET /verify/<reference>/ - Verify a transaction
    - GET /status/<reference>/ - Payment status projection
    - POST /webhook/ - Webhook for the default provider
    - POST /webhooks/<provider>/ - Webhook for a named provider

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import payment_webhook

app_name = "payments"

urlpatterns = [
    path("initialize/", views.InitializeTransactionView.as_view(), name="initialize"),
    path("verify/<str:reference>/", views.VerifyTransactionView.as_view(), name="verify"),
    path("status/<str:reference>/", views.PaymentStatusView.as_view(), name="status"),
    # Webhook endpoints
    path("webhook/", payment_webhook, name="webhook"),
    path("webhooks/<str:provider_name>/", payment_webhook, name="provider-webhook"),
]
