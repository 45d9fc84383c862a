"""
Celery configuration for the event booking payments service.

Celery runs the background reconciliation work:
- Periodic re-verification of registrations stuck in pending
- Re-dispatch of webhook deliveries whose processing failed

Redis is used as both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps; the beat schedule lives in
settings (CELERY_BEAT_SCHEDULE).

Usage:
    from payments.tasks import reconcile_pending_registrations

    reconcile_pending_registrations.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
