"""
OrderGateway: the only way the payment core reads or writes orders.

    get_order_for_payment(order_id, order_type)      → OrderForPayment
    set_order_payment_status(order_id, order_type, …) → "set fields to X" update

Order kind routing goes through ORDER_STORES; no string branching here.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.utils import timezone

from apps.orders.models import ORDER_STORES, OrderKind, PaymentStatus
from apps.payments.exceptions import NotFoundError

logger = logging.getLogger("trackflow.orders")

DEFAULT_ORDER_COST = Decimal("1000")   # KES, used when a booking never got priced
TERMINAL_PAYMENT_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.FAILED)


@dataclass(frozen=True)
class OrderForPayment:
    order_id: str
    order_type: str
    tracking_reference: str
    total_cost: Decimal
    contact_phone: str = ""
    contact_email: str = ""


def resolve_store(order_type):
    """Map an order kind (enum or raw string) to its model. ValueError if unknown."""
    try:
        kind = OrderKind(order_type)
    except ValueError:
        raise ValueError(f"Unknown order type: {order_type}") from None
    return ORDER_STORES[kind]


class OrderGateway:

    def get_order_for_payment(self, order_id, order_type) -> OrderForPayment:
        store = resolve_store(order_type)
        try:
            order = store.objects.get(pk=order_id)
        except store.DoesNotExist:
            raise NotFoundError(f"{order_type} order {order_id} not found",
                                order_id=order_id, order_type=order_type) from None

        total = order.total_cost
        if total is None:
            total = order.shipping_cost if order.shipping_cost is not None else DEFAULT_ORDER_COST

        return OrderForPayment(
            order_id=str(order.pk),
            order_type=str(OrderKind(order_type)),
            tracking_reference=order.tracking_number,
            total_cost=total,
            contact_phone=order.customer_phone,
            contact_email=order.customer_email,
        )

    @transaction.atomic
    def set_order_payment_status(
        self,
        order_id,
        order_type,
        status: str,
        receipt_id: Optional[str] = None,
        checkout_id: Optional[str] = None,
    ):
        """
        Overwrite the order's payment block. Safe to repeat: the same input
        always leaves the same row behind, and paid_at is only stamped once.
        """
        store = resolve_store(order_type)
        try:
            order = store.objects.select_for_update().get(pk=order_id)
        except store.DoesNotExist:
            raise NotFoundError(f"{order_type} order {order_id} not found",
                                order_id=order_id, order_type=order_type) from None

        if (order.payment_status == PaymentStatus.COMPLETED
                and status != PaymentStatus.COMPLETED):
            # A later attempt cannot un-pay an order that already has money against it.
            logger.warning(
                "Order %s already paid (%s); ignoring %s from checkout %s",
                order.tracking_number, order.mpesa_transaction_id, status, checkout_id,
            )
            return order

        if (status == PaymentStatus.PENDING and checkout_id
                and order.mpesa_checkout_id == checkout_id
                and order.payment_status in TERMINAL_PAYMENT_STATUSES):
            # This attempt already finished before it could be marked pending.
            logger.info("Order %s already %s for checkout %s; pending ignored",
                        order.tracking_number, order.payment_status, checkout_id)
            return order

        fields = ["payment_status", "updated_at"]
        order.payment_status = status
        if receipt_id:
            order.mpesa_transaction_id = receipt_id
            fields.append("mpesa_transaction_id")
        if checkout_id:
            order.mpesa_checkout_id = checkout_id
            fields.append("mpesa_checkout_id")
        if status == PaymentStatus.COMPLETED and order.paid_at is None:
            order.paid_at = timezone.now()
            fields.append("paid_at")
        order.save(update_fields=fields)

        logger.info("Order %s payment_status → %s", order.tracking_number, status)
        return order

    @transaction.atomic
    def attach_receipt(self, order_id, order_type, checkout_id: str, receipt_id: str):
        """
        Fill in a receipt that arrived after the order was already settled by
        the same checkout. Returns True when the order changed.
        """
        store = resolve_store(order_type)
        try:
            order = store.objects.select_for_update().get(pk=order_id)
        except store.DoesNotExist:
            raise NotFoundError(f"{order_type} order {order_id} not found",
                                order_id=order_id, order_type=order_type) from None

        if order.mpesa_checkout_id != checkout_id or order.mpesa_transaction_id:
            return False
        order.mpesa_transaction_id = receipt_id
        order.save(update_fields=["mpesa_transaction_id", "updated_at"])
        logger.info("Order %s receipt %s attached", order.tracking_number, receipt_id)
        return True
