"""
Pytest fixtures for events tests.
"""

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from events.tests.factories import EventFactory, RegistrationFactory


@pytest.fixture
def event(db):
    """Event with Regular (5000), VIP (12500.5) and Community (0) packages."""
    return EventFactory()


@pytest.fixture
def registration(db, event):
    """Pending Regular registration for the event fixture."""
    return RegistrationFactory(event=event)


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="staff",
        email="staff@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def staff_client(staff_user):
    """API client authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client
