"""
Payment services for coordinating payment operations.

This module provides:
- TransactionInitiator: Starts provider transactions for registrations
- TransactionVerifier: Pulls authoritative status and reconciles registrations
- PaymentStateService: Compare-and-set payment status transitions

Usage:
    from payments.services import InitializeParams, TransactionInitiator

    result = TransactionInitiator.initialize(
        InitializeParams(email="ada@example.com", amount=Decimal("5000"))
    )

    from payments.services import TransactionVerifier

    result = TransactionVerifier.verify("evt_1700000000000_k3j9x0a2b")

    from payments.services import PaymentStateService

    result = PaymentStateService.transition(
        registration, PaymentStatus.FAILED, source="webhook"
    )
"""

from payments.services.initiator import (
    InitializeParams,
    TransactionInitiator,
    generate_reference,
)
from payments.services.payment_state import PaymentStateService, TransitionOutcome
from payments.services.verifier import TransactionVerifier

__all__ = [
    "InitializeParams",
    "PaymentStateService",
    "TransactionInitiator",
    "TransactionVerifier",
    "TransitionOutcome",
    "generate_reference",
]
