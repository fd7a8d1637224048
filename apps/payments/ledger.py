"""
TransactionLedger — durable record and state guard for PaymentTransaction.

    create()                  (none) → pending
    transition_to_terminal()  pending → completed | failed, exactly once

The terminal write is one conditional UPDATE (… WHERE status = 'pending'),
so a callback racing a status poll for the same checkout id cannot both win:
the database serializes them and the loser updates zero rows.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.payments.exceptions import DuplicateCheckoutIdError, NotFoundError
from apps.payments.models import PaymentTransaction

logger = logging.getLogger("trackflow.payments.ledger")

Status = PaymentTransaction.Status


@dataclass(frozen=True)
class PaymentAttempt:
    """Everything known about a push request once the provider accepted it."""
    checkout_request_id: str
    merchant_request_id: str
    order_id: str
    order_type: str
    phone_number: str
    amount: int
    initiated_by: str = PaymentTransaction.Initiator.CUSTOMER
    initiated_by_user_id: str = ""


@dataclass(frozen=True)
class Transition:
    transaction: PaymentTransaction
    applied: bool   # False when the row was already terminal
    receipt_added: bool = False   # late receipt written onto an already-completed row


class TransactionLedger:

    def create(self, attempt: PaymentAttempt) -> PaymentTransaction:
        if PaymentTransaction.objects.filter(checkout_request_id=attempt.checkout_request_id).exists():
            raise DuplicateCheckoutIdError(
                f"Checkout id {attempt.checkout_request_id} already recorded",
                checkout_request_id=attempt.checkout_request_id,
            )
        try:
            with transaction.atomic():
                txn = PaymentTransaction.objects.create(
                    checkout_request_id  = attempt.checkout_request_id,
                    merchant_request_id  = attempt.merchant_request_id or "",
                    order_id             = attempt.order_id,
                    order_type           = attempt.order_type,
                    phone_number         = attempt.phone_number,
                    amount               = attempt.amount,
                    status               = Status.PENDING,
                    initiated_by         = attempt.initiated_by,
                    initiated_by_user_id = attempt.initiated_by_user_id or "",
                )
        except IntegrityError as exc:
            # Lost a race with another insert of the same id.
            raise DuplicateCheckoutIdError(
                f"Checkout id {attempt.checkout_request_id} already recorded",
                checkout_request_id=attempt.checkout_request_id,
            ) from exc

        logger.info(
            "Ledger: pending %s for %s order %s, %s KES from %s",
            txn.checkout_request_id, txn.order_type, txn.order_id, txn.amount, txn.phone_number,
        )
        return txn

    def transition_to_terminal(
        self,
        checkout_request_id: str,
        status: str,
        result_code: Optional[int] = None,
        result_desc: str = "",
        receipt_id: Optional[str] = None,
        raw_callback: Optional[dict] = None,
    ) -> Transition:
        if status not in PaymentTransaction.TERMINAL_STATUSES:
            raise ValueError(f"{status!r} is not a terminal payment status")

        now = timezone.now()
        changes = {
            "status":      status,
            "result_code": result_code,
            "result_desc": (result_desc or "")[:255],
            "updated_at":  now,
        }
        if receipt_id:
            changes["receipt_id"] = receipt_id
        if raw_callback is not None:
            changes["raw_callback"] = raw_callback
        if status == Status.COMPLETED:
            changes["completed_at"] = now

        with transaction.atomic():
            updated = (
                PaymentTransaction.objects
                .filter(checkout_request_id=checkout_request_id, status=Status.PENDING)
                .update(**changes)
            )
            txn = PaymentTransaction.objects.filter(checkout_request_id=checkout_request_id).first()

        if txn is None:
            raise NotFoundError(
                f"No payment transaction for checkout id {checkout_request_id}",
                checkout_request_id=checkout_request_id,
            )

        if updated:
            logger.info("Ledger: %s pending → %s (%s %s)",
                        checkout_request_id, status, result_code, result_desc)
            return Transition(transaction=txn, applied=True)

        logger.info("Ledger: %s already %s; %s ignored",
                    checkout_request_id, txn.status, status)
        receipt_added = False
        if receipt_id and txn.status == status and not txn.receipt_id:
            # A status query settled the row first; the query carries no receipt.
            receipt_added = bool(
                PaymentTransaction.objects
                .filter(checkout_request_id=checkout_request_id, status=status, receipt_id="")
                .update(receipt_id=receipt_id, updated_at=now)
            )
            if receipt_added:
                txn.refresh_from_db()
                logger.info("Ledger: %s receipt %s attached", checkout_request_id, receipt_id)
        return Transition(transaction=txn, applied=False, receipt_added=receipt_added)

    def get(self, checkout_request_id: str) -> PaymentTransaction:
        try:
            return PaymentTransaction.objects.get(checkout_request_id=checkout_request_id)
        except PaymentTransaction.DoesNotExist:
            raise NotFoundError(
                f"No payment transaction for checkout id {checkout_request_id}",
                checkout_request_id=checkout_request_id,
            ) from None

    def history_for(self, order_id, order_type):
        """All attempts for one order, newest first."""
        return list(
            PaymentTransaction.objects
            .filter(order_id=str(order_id), order_type=str(order_type))
            .order_by("-created_at", "-id")
        )

    def stale_pending(self, older_than: timedelta):
        cutoff = timezone.now() - older_than
        return PaymentTransaction.objects.filter(
            status=Status.PENDING, created_at__lt=cutoff,
        ).order_by("created_at")
