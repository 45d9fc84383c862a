"""
Tests for PaymentStateService (compare-and-set status transitions).

Tests cover:
- Allowed and rejected transitions
- No-op moves to the current status
- No regression from paid on a late failure
- Concurrent modification detected through a stale instance
- Staff override (force)
- Provider payload merged in the same write
"""

import pytest
from freezegun import freeze_time

from payments.services import PaymentStateService
from payments.state_machines import PaymentStatus

from events.models import Registration
from events.tests.factories import RegistrationFactory


@pytest.mark.django_db
class TestTransition:
    def test_pending_to_paid(self, registration):
        with freeze_time("2024-01-15 10:00:00"):
            result = PaymentStateService.transition(
                registration, PaymentStatus.PAID, source="verification"
            )

        assert result.success
        outcome = result.data
        assert outcome.changed
        assert outcome.previous_status == PaymentStatus.PENDING
        assert outcome.status == PaymentStatus.PAID

        stored = Registration.objects.get(pk=registration.pk)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.paid_at.isoformat() == "2024-01-15T10:00:00+00:00"
        assert stored.version == 2

    def test_same_status_is_noop(self):
        registration = RegistrationFactory(payment_status=PaymentStatus.PAID)

        result = PaymentStateService.transition(
            registration, PaymentStatus.PAID, source="webhook"
        )

        assert result.success
        assert not result.data.changed
        registration.refresh_from_db()
        assert registration.version == 1

    def test_paid_never_regresses_to_failed(self):
        registration = RegistrationFactory(payment_status=PaymentStatus.PAID)

        result = PaymentStateService.transition(
            registration, PaymentStatus.FAILED, source="webhook"
        )

        assert not result.success
        assert result.error_code == "INVALID_STATE_TRANSITION"
        registration.refresh_from_db()
        assert registration.payment_status == PaymentStatus.PAID
        assert registration.failed_at is None

    def test_refunded_never_moves_to_pending(self):
        registration = RegistrationFactory(payment_status=PaymentStatus.REFUNDED)

        result = PaymentStateService.transition(
            registration, PaymentStatus.PENDING, source="admin"
        )

        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_failed_to_paid(self):
        registration = RegistrationFactory(payment_status=PaymentStatus.FAILED)

        result = PaymentStateService.transition(
            registration, PaymentStatus.PAID, source="verification"
        )

        assert result.success
        assert result.data.status == PaymentStatus.PAID

    def test_unknown_status(self, registration):
        result = PaymentStateService.transition(registration, "settled", source="admin")

        assert result.error_code == "INVALID_STATUS"

    def test_force_skips_transition_table(self):
        registration = RegistrationFactory(payment_status=PaymentStatus.PAID)

        result = PaymentStateService.transition(
            registration, PaymentStatus.FAILED, source="admin", force=True
        )

        assert result.success
        registration.refresh_from_db()
        assert registration.payment_status == PaymentStatus.FAILED
        assert registration.failed_at is not None

    def test_provider_payload_merged(self, pending_registration):
        result = PaymentStateService.transition(
            pending_registration,
            PaymentStatus.PAID,
            source="webhook",
            provider_payload=("paystack", {"webhook": {"status": "success"}}),
        )

        assert result.success
        stored = Registration.objects.get(pk=pending_registration.pk)
        paystack_data = stored.provider_data["paystack"]
        assert paystack_data["webhook"] == {"status": "success"}
        # Checkout handle stored at initialization is kept
        assert paystack_data["access_code"] == "acc_existing"


@pytest.mark.django_db
class TestConcurrentTransition:
    """The write is conditioned on the status the guard evaluated."""

    def test_stale_failure_does_not_overwrite_concurrent_success(self, registration):
        stale = Registration.objects.get(pk=registration.pk)

        # Another request (verification) marks it paid first
        assert PaymentStateService.transition(
            registration, PaymentStatus.PAID, source="verification"
        ).success

        # A delayed charge.failed still holds the pending copy
        result = PaymentStateService.transition(
            stale, PaymentStatus.FAILED, source="webhook"
        )

        assert not result.success
        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert Registration.objects.get(pk=registration.pk).payment_status == PaymentStatus.PAID

    def test_stale_success_after_concurrent_success_is_noop(self, registration):
        stale = Registration.objects.get(pk=registration.pk)
        PaymentStateService.transition(registration, PaymentStatus.PAID, source="webhook")

        result = PaymentStateService.transition(
            stale, PaymentStatus.PAID, source="verification"
        )

        assert result.success
        assert not result.data.changed
        stored = Registration.objects.get(pk=registration.pk)
        assert stored.version == 2

    def test_stale_success_after_concurrent_failure_still_pays(self, registration):
        stale = Registration.objects.get(pk=registration.pk)
        PaymentStateService.transition(registration, PaymentStatus.FAILED, source="webhook")

        result = PaymentStateService.transition(
            stale, PaymentStatus.PAID, source="verification"
        )

        assert result.success
        assert result.data.changed
        assert result.data.previous_status == PaymentStatus.FAILED
        assert Registration.objects.get(pk=registration.pk).payment_status == PaymentStatus.PAID

    def test_gives_up_after_max_attempts(self, registration, monkeypatch):
        """Status keeps changing underneath: no write, CONCURRENT_MODIFICATION."""

        def always_pending(self, *args, **kwargs):
            self.payment_status = PaymentStatus.PENDING

        Registration.objects.filter(pk=registration.pk).update(
            payment_status=PaymentStatus.CANCELLED
        )
        monkeypatch.setattr(Registration, "refresh_from_db", always_pending)

        result = PaymentStateService.transition(
            registration, PaymentStatus.PAID, source="webhook"
        )

        assert not result.success
        assert result.error_code == "CONCURRENT_MODIFICATION"
        assert (
            Registration.objects.get(pk=registration.pk).payment_status
            == PaymentStatus.CANCELLED
        )


@pytest.mark.django_db
class TestLookup:
    def test_get_by_reference(self, pending_registration):
        found = PaymentStateService.get_by_reference(pending_registration.payment_reference)

        assert found == pending_registration

    def test_get_by_reference_missing(self, db):
        assert PaymentStateService.get_by_reference("evt_0_missing") is None
        assert PaymentStateService.get_by_reference("") is None

