"""
Tests for payments app.

This package contains test modules for:
- test_models.py: WebhookEvent model tests
- test_providers.py: Paystack and Stripe provider tests
- test_payment_state.py: Status transition guard tests
- test_initiator.py / test_verifier.py: Service tests
- test_views.py: API endpoint tests
- test_tasks.py: Reconciliation and webhook maintenance tasks
- test_integration.py: Full payment journeys

Usage:
    pytest payments/tests/
    pytest payments/tests/test_verifier.py
"""
