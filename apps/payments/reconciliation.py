"""
OrderReconciler copies a terminal payment outcome onto its order.
A missing order is reported, never raised: the payment outcome is already
recorded in the ledger and stays there.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from apps.notifications.service import NotificationService
from apps.orders.models import PaymentStatus
from apps.orders.service import OrderGateway
from apps.payments.exceptions import NotFoundError
from apps.payments.models import PaymentTransaction

logger = logging.getLogger("trackflow.payments.reconciliation")


@dataclass(frozen=True)
class ReconciliationResult:
    ok: bool
    order_status: Optional[str] = None
    error: str = ""


class OrderReconciler:
    """Dependencies are injected so they can be swapped in tests."""

    def __init__(self, order_gateway=None, notification_service=None):
        self.orders   = order_gateway        or OrderGateway()
        self.notifier = notification_service or NotificationService()

    def reconcile(self, txn: PaymentTransaction) -> ReconciliationResult:
        if not txn.is_terminal:
            raise ValueError(f"Cannot reconcile {txn.checkout_request_id} while {txn.status}")

        order_status = (PaymentStatus.COMPLETED if txn.status == PaymentTransaction.Status.COMPLETED
                        else PaymentStatus.FAILED)
        try:
            order = self.orders.set_order_payment_status(
                txn.order_id, txn.order_type,
                status=order_status,
                receipt_id=txn.receipt_id or None,
                checkout_id=txn.checkout_request_id,
            )
        except (NotFoundError, ValueError) as exc:
            logger.error(
                "Reconciliation failed for %s (%s order %s): %s",
                txn.checkout_request_id, txn.order_type, txn.order_id, exc,
            )
            return ReconciliationResult(ok=False, error=str(exc))

        logger.info("Payment %s for %s order %s (%s)",
                    order_status, txn.order_type, txn.order_id, order.tracking_number)
        self._notify(txn, order)
        return ReconciliationResult(ok=True, order_status=order.payment_status)

    def mark_pending(self, txn: PaymentTransaction) -> ReconciliationResult:
        """Flag the order as awaiting payment once the push has been accepted."""
        try:
            order = self.orders.set_order_payment_status(
                txn.order_id, txn.order_type,
                status=PaymentStatus.PENDING,
                checkout_id=txn.checkout_request_id,
            )
        except (NotFoundError, ValueError) as exc:
            logger.warning("Could not mark %s order %s pending: %s", txn.order_type, txn.order_id, exc)
            return ReconciliationResult(ok=False, error=str(exc))
        return ReconciliationResult(ok=True, order_status=order.payment_status)

    def attach_receipt(self, txn: PaymentTransaction) -> ReconciliationResult:
        """Copy a late receipt onto an order that is already paid. No notification."""
        try:
            attached = self.orders.attach_receipt(
                txn.order_id, txn.order_type,
                checkout_id=txn.checkout_request_id,
                receipt_id=txn.receipt_id,
            )
        except (NotFoundError, ValueError) as exc:
            logger.error("Could not attach receipt %s to %s order %s: %s",
                         txn.receipt_id, txn.order_type, txn.order_id, exc)
            return ReconciliationResult(ok=False, error=str(exc))
        return ReconciliationResult(ok=attached, order_status=PaymentStatus.COMPLETED)

    def _notify(self, txn, order):
        """Best-effort confirmation; never affects the reconciliation result."""
        try:
            if txn.status == PaymentTransaction.Status.COMPLETED:
                message = (
                    f"TrackFlow: Payment of KES {txn.amount} received for "
                    f"{order.tracking_number}. M-Pesa receipt {txn.receipt_id or 'pending'}."
                )
            else:
                message = (
                    f"TrackFlow: Payment for {order.tracking_number} was not completed "
                    f"({txn.result_desc or 'declined'}). Please try again."
                )
            self.notifier.notify(order.customer_phone or txn.phone_number, message)
            if order.customer_email and txn.status == PaymentTransaction.Status.COMPLETED:
                self.notifier.notify(order.customer_email, message)
        except Exception as exc:
            logger.warning("Payment notification for %s failed: %s", txn.checkout_request_id, exc)
