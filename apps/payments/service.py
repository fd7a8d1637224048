"""
PaymentService: the payment orchestrator.

Flow:  initiate_payment  →  (provider callback → CallbackProcessor)
                         →  get_status  (client polling, lazy provider re-query)
"""

import enum
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.orders.service import OrderGateway
from apps.payments.callbacks import CallbackProcessor
from apps.payments.exceptions import PaymentError
from apps.payments.gateway import get_gateway_client
from apps.payments.ledger import PaymentAttempt, TransactionLedger
from apps.payments.models import PaymentTransaction
from apps.payments.reconciliation import OrderReconciler
from apps.payments.utils import normalize_phone_number, to_whole_units

logger = logging.getLogger("trackflow.payments")

Status = PaymentTransaction.Status

STATUS_MESSAGES = {
    Status.PENDING:   "Payment request sent to your phone. Enter your M-Pesa PIN to complete.",
    Status.COMPLETED: "Payment completed successfully.",
    Status.FAILED:    "Payment failed. Please try again.",
}
STILL_PROCESSING_MESSAGE = "Still processing, check back shortly."


class PollOutcome(str, enum.Enum):
    """What the status endpoint did about the provider on this request."""
    NOT_NEEDED   = "not_needed"     # already terminal, provider not asked
    REFRESHED    = "refreshed"      # provider gave a definitive answer, ledger updated
    INCONCLUSIVE = "inconclusive"   # provider still processing
    UNAVAILABLE  = "unavailable"    # query failed; stored state returned as-is


@dataclass(frozen=True)
class InitiationResult:
    transaction: PaymentTransaction
    customer_message: str


@dataclass(frozen=True)
class StatusReport:
    transaction: PaymentTransaction
    poll: PollOutcome
    message: str


class PaymentService:
    """
    Unified payment orchestration.
    Dependencies are injected so they can be swapped in tests.
    """

    def __init__(self, gateway=None, ledger=None, reconciler=None, order_gateway=None):
        self.gateway    = gateway       or get_gateway_client()
        self.ledger     = ledger        or TransactionLedger()
        self.orders     = order_gateway or OrderGateway()
        self.reconciler = reconciler    or OrderReconciler(order_gateway=self.orders)
        self.callbacks  = CallbackProcessor(ledger=self.ledger, reconciler=self.reconciler)

    # ── Initiation ────────────────────────────────────────────────────────────
    def initiate_payment(
        self,
        order_id,
        order_type,
        phone_number,
        amount,
        initiated_by=PaymentTransaction.Initiator.CUSTOMER,
        initiated_by_user_id="",
    ) -> InitiationResult:
        """
        Send an STK push for an order and record it as pending.
        Raises NotFoundError for an unknown order and the gateway errors
        unchanged; nothing is retried, the customer resubmits.
        """
        order = self.orders.get_order_for_payment(order_id, order_type)
        phone = normalize_phone_number(phone_number)

        push = self.gateway.initiate_push_payment(
            phone,
            amount,
            order.tracking_reference,
            f"Payment for parcel {order.tracking_reference}",
        )

        txn = self.ledger.create(PaymentAttempt(
            checkout_request_id  = push.checkout_request_id,
            merchant_request_id  = push.merchant_request_id,
            order_id             = order.order_id,
            order_type           = order.order_type,
            phone_number         = phone,
            amount               = to_whole_units(amount),
            initiated_by         = initiated_by or PaymentTransaction.Initiator.CUSTOMER,
            initiated_by_user_id = initiated_by_user_id or "",
        ))
        self.reconciler.mark_pending(txn)
        return InitiationResult(transaction=txn, customer_message=push.customer_message)

    # ── Status polling ────────────────────────────────────────────────────────
    def get_status(self, checkout_request_id: str) -> StatusReport:
        """
        Current state of a payment. While pending, ask the provider once;
        a definitive answer goes through the same ledger transition as a
        callback. Raises NotFoundError for an unknown id, nothing else.
        """
        txn = self.ledger.get(checkout_request_id)
        if txn.is_terminal:
            return self._report(txn, PollOutcome.NOT_NEEDED)

        try:
            answer = self.gateway.query_status(checkout_request_id)
        except PaymentError as exc:
            # Expected while the payer is still on the prompt; not a failure.
            logger.info("Status query for %s unavailable: %s", checkout_request_id, exc)
            return self._report(txn, PollOutcome.UNAVAILABLE)

        if not answer.definitive:
            logger.debug("Status query for %s inconclusive: %s", checkout_request_id, answer.result_desc)
            return self._report(txn, PollOutcome.INCONCLUSIVE)

        transition = self.ledger.transition_to_terminal(
            checkout_request_id,
            status=Status.COMPLETED if answer.success else Status.FAILED,
            result_code=answer.result_code,
            result_desc=answer.result_desc,
        )
        if transition.applied:
            self.reconciler.reconcile(transition.transaction)
        return self._report(transition.transaction, PollOutcome.REFRESHED)

    def history(self, order_id, order_type):
        return self.ledger.history_for(order_id, order_type)

    def refresh_pending(self, older_than: timedelta) -> dict:
        """Re-query every pending transaction older than `older_than`."""
        counts = {outcome.value: 0 for outcome in PollOutcome}
        for txn in self.ledger.stale_pending(older_than):
            report = self.get_status(txn.checkout_request_id)
            counts[report.poll.value] += 1
        return counts

    # ── helpers ──────────────────────────────────────────────────────────────
    def _report(self, txn, poll) -> StatusReport:
        message = STATUS_MESSAGES.get(txn.status, "")
        if txn.status == Status.PENDING:
            grace = timedelta(seconds=getattr(settings, "PAYMENT_PENDING_GRACE_SECONDS", 120))
            if timezone.now() - txn.created_at > grace:
                message = STILL_PROCESSING_MESSAGE
        return StatusReport(transaction=txn, poll=poll, message=message)
