"""
Order models for the four booking kinds a customer can pay for.
Only the payment block is modelled in detail; everything else about an order
belongs to the booking UI.
"""

import uuid
from django.db import models
from django.core.validators import MinValueValidator


def _new_order_id():
    return uuid.uuid4().hex


class OrderKind(models.TextChoices):
    REGULAR       = "regular",       "Regular parcel"
    COLD_CHAIN    = "cold_chain",    "Cold-chain booking"
    INTERNATIONAL = "international", "International shipment"
    SPECIAL       = "special",       "Special delivery"


class PaymentStatus(models.TextChoices):
    UNPAID    = "unpaid",    "Unpaid"
    PENDING   = "pending",   "Pending"
    COMPLETED = "completed", "Completed"
    FAILED    = "failed",    "Failed"


class PayableOrder(models.Model):
    """Fields every order kind shares; written only through OrderGateway."""

    id              = models.CharField(primary_key=True, max_length=40, default=_new_order_id, editable=False)
    tracking_number = models.CharField(max_length=30, unique=True, db_index=True)
    customer_name   = models.CharField(max_length=120, blank=True)
    customer_phone  = models.CharField(max_length=20, blank=True)
    customer_email  = models.EmailField(blank=True)

    total_cost      = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                          validators=[MinValueValidator(0)])
    shipping_cost   = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                          validators=[MinValueValidator(0)])

    payment_status       = models.CharField(max_length=10, choices=PaymentStatus.choices,
                                            default=PaymentStatus.UNPAID)
    mpesa_transaction_id = models.CharField(max_length=40, blank=True)
    mpesa_checkout_id    = models.CharField(max_length=100, blank=True)
    paid_at              = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.tracking_number} [{self.payment_status}]"


class Parcel(PayableOrder):
    """Regular door-to-door parcel."""
    sender_address    = models.CharField(max_length=255, blank=True)
    recipient_name    = models.CharField(max_length=120, blank=True)
    recipient_address = models.CharField(max_length=255, blank=True)
    weight_kg         = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)


class ColdChainBooking(PayableOrder):
    """Temperature-controlled consignment."""
    product_type      = models.CharField(max_length=80, blank=True)
    temperature_range = models.CharField(max_length=30, blank=True)
    pickup_date       = models.DateField(null=True, blank=True)


class InternationalShipment(PayableOrder):
    destination_country = models.CharField(max_length=60, blank=True)
    declared_value      = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)


class SpecialDelivery(PayableOrder):
    """Fragile, oversized or otherwise hand-handled items."""
    delivery_type        = models.CharField(max_length=60, blank=True)
    special_instructions = models.TextField(blank=True)


# Order kind → concrete store. Every kind is updated identically.
ORDER_STORES = {
    OrderKind.REGULAR:       Parcel,
    OrderKind.COLD_CHAIN:    ColdChainBooking,
    OrderKind.INTERNATIONAL: InternationalShipment,
    OrderKind.SPECIAL:       SpecialDelivery,
}
