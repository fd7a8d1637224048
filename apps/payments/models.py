"""
Payment models.
PaymentTransaction is one STK push attempt; rows are never deleted and move
pending → completed | failed exactly once (guarded in ledger.py).
PaymentCallback keeps every inbound provider notification for audit.
"""

import uuid

from django.core.validators import MinValueValidator
from django.db import models

from apps.orders.models import OrderKind


class PaymentTransaction(models.Model):

    class Status(models.TextChoices):
        PENDING   = "pending",   "Pending"
        COMPLETED = "completed", "Completed"
        FAILED    = "failed",    "Failed"

    class Initiator(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        STAFF    = "staff",    "Staff"

    TERMINAL_STATUSES = (Status.COMPLETED, Status.FAILED)

    id                  = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    checkout_request_id = models.CharField(max_length=100, unique=True, editable=False)
    merchant_request_id = models.CharField(max_length=100, blank=True)

    order_id    = models.CharField(max_length=40)
    order_type  = models.CharField(max_length=15, choices=OrderKind.choices)

    phone_number = models.CharField(max_length=15)
    amount       = models.PositiveIntegerField(validators=[MinValueValidator(1)])   # whole KES
    currency     = models.CharField(max_length=3, default="KES")

    status      = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    result_code = models.IntegerField(null=True, blank=True)
    result_desc = models.CharField(max_length=255, blank=True)
    receipt_id  = models.CharField(max_length=40, blank=True)

    initiated_by         = models.CharField(max_length=10, choices=Initiator.choices,
                                            default=Initiator.CUSTOMER)
    initiated_by_user_id = models.CharField(max_length=64, blank=True)

    raw_callback = models.JSONField(null=True, blank=True)

    created_at   = models.DateTimeField(auto_now_add=True)
    updated_at   = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes  = [
            models.Index(fields=["order_id", "order_type"], name="pay_order_idx"),
            models.Index(fields=["status", "created_at"], name="pay_status_created_idx"),
        ]

    def __str__(self):
        return f"{self.checkout_request_id} – {self.status} ({self.amount} {self.currency})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class PaymentCallback(models.Model):
    """Raw provider callback, stored before any processing."""

    class Outcome(models.TextChoices):
        APPLIED   = "applied",   "Applied"
        DUPLICATE = "duplicate", "Duplicate (already terminal)"
        UNKNOWN   = "unknown",   "Unknown checkout id"
        MALFORMED = "malformed", "Malformed payload"
        ERROR     = "error",     "Processing error"

    checkout_request_id = models.CharField(max_length=100, blank=True, db_index=True)
    payload     = models.JSONField(null=True, blank=True)
    raw_body    = models.TextField(blank=True)
    outcome     = models.CharField(max_length=10, choices=Outcome.choices, blank=True)
    detail      = models.CharField(max_length=255, blank=True)
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-received_at"]

    def __str__(self):
        return f"{self.checkout_request_id or '?'} [{self.outcome or 'received'}]"
