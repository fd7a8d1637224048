"""
Celery app.
The broker is Redis in production; the only scheduled job is the pending
payment refresh (see CELERY_BEAT_SCHEDULE in settings).
"""

import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "trackflow.settings_dev")

app = Celery("trackflow")
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
