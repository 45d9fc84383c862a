"""
Payments app for registration payment reconciliation.

This app handles:
- Starting provider transactions for registrations (Paystack, Stripe)
- Verifying transactions by reference
- Receiving signed provider webhooks
- Guarding registration payment status transitions
- Periodic reconciliation of stale pending registrations

Related apps:
    - events: Registration model whose payment status is reconciled here

Usage:
    from payments.services import TransactionInitiator, TransactionVerifier

    result = TransactionVerifier.verify(reference)
"""
