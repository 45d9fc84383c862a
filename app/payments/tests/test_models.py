"""
Tests for WebhookEvent.

Tests cover:
- Processing status bookkeeping (mark_* methods)
- Retry eligibility
- Transaction object extraction for both payload shapes
- (provider, event_id) uniqueness
"""

import pytest
from django.db import IntegrityError
from freezegun import freeze_time

from payments.models import WebhookEvent
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import WebhookEventStatus

from .factories import WebhookEventFactory


@pytest.mark.django_db
class TestWebhookEventStatus:
    def test_defaults(self):
        event = WebhookEventFactory()

        assert event.status == WebhookEventStatus.PENDING
        assert event.retry_count == 0
        assert not event.is_processed

    def test_mark_processing_counts_attempt(self):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_mark_processed(self):
        event = WebhookEventFactory(failed=True)

        with freeze_time("2024-01-15 10:00:00"):
            event.mark_processed()

        assert event.is_processed
        assert event.processed_at.isoformat() == "2024-01-15T10:00:00+00:00"
        assert event.error_message is None

    def test_mark_failed(self):
        event = WebhookEventFactory()

        event.mark_failed("boom")

        assert event.is_failed
        assert event.error_message == "boom"

    def test_can_retry(self):
        assert WebhookEventFactory(failed=True).can_retry
        assert not WebhookEventFactory().can_retry
        assert not WebhookEventFactory(
            failed=True, retry_count=MAX_WEBHOOK_RETRIES
        ).can_retry

    def test_str(self):
        event = WebhookEventFactory(reference="evt_1_abc")

        assert str(event) == "WebhookEvent(paystack, charge.success, evt_1_abc)"


@pytest.mark.django_db
class TestWebhookEventData:
    def test_paystack_payload(self):
        event = WebhookEventFactory(reference="evt_1_abc")

        assert event.get_data()["reference"] == "evt_1_abc"

    def test_stripe_payload(self):
        event = WebhookEventFactory(
            provider="stripe",
            payload={
                "id": "evt_stripe_1",
                "type": "checkout.session.completed",
                "data": {"object": {"id": "cs_test_1", "payment_status": "paid"}},
            },
        )

        assert event.get_data() == {"id": "cs_test_1", "payment_status": "paid"}

    def test_missing_data(self):
        assert WebhookEventFactory(payload={"event": "ping"}).get_data() == {}


@pytest.mark.django_db
class TestWebhookEventUniqueness:
    def test_same_event_id_per_provider_rejected(self):
        WebhookEventFactory(provider="paystack", event_id="abc")

        with pytest.raises(IntegrityError):
            WebhookEvent.objects.create(
                provider="paystack", event_id="abc", event_type="charge.success", payload={}
            )

    def test_same_event_id_other_provider_allowed(self):
        WebhookEventFactory(provider="paystack", event_id="abc")

        WebhookEventFactory(provider="stripe", event_id="abc")

        assert WebhookEvent.objects.filter(event_id="abc").count() == 2
