"""Payment Celery tasks."""

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings

logger = logging.getLogger("trackflow.tasks")


@shared_task
def refresh_pending_payments():
    """
    Cron task: re-query M-Pesa for transactions still pending after
    PAYMENT_REFRESH_AFTER_SECONDS, for pushes whose callback never arrived.
    Rows the provider cannot answer for stay pending.
    """
    from apps.payments.service import PaymentService

    older_than = timedelta(seconds=getattr(settings, "PAYMENT_REFRESH_AFTER_SECONDS", 300))
    counts = PaymentService().refresh_pending(older_than)
    logger.info("Pending payment refresh: %s", counts)
    return counts
