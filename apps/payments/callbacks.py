"""
STK push callback handling.

Daraja posts {"Body": {"stkCallback": {...}}} at least once per push. The
parser turns that into a CallbackResult or raises CallbackParseError; the
processor applies it to the ledger and, only when the ledger actually moved,
reconciles the order. A redelivered callback therefore changes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from apps.payments.exceptions import CallbackParseError
from apps.payments.ledger import TransactionLedger, Transition
from apps.payments.models import PaymentCallback, PaymentTransaction
from apps.payments.reconciliation import OrderReconciler, ReconciliationResult

logger = logging.getLogger("trackflow.payments.callbacks")

# CallbackMetadata.Item names → CallbackMetadata attributes
METADATA_FIELDS = {
    "Amount":             "amount",
    "MpesaReceiptNumber": "receipt_number",
    "Balance":            "balance",
    "TransactionDate":    "transaction_date",
    "PhoneNumber":        "phone_number",
}


@dataclass(frozen=True)
class CallbackMetadata:
    amount: Optional[float] = None
    receipt_number: Optional[str] = None
    balance: Optional[float] = None
    transaction_date: Optional[int] = None
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class CallbackResult:
    merchant_request_id: str
    checkout_request_id: str
    result_code: int
    result_desc: str
    success: bool
    metadata: Optional[CallbackMetadata] = None


@dataclass(frozen=True)
class CallbackOutcome:
    result: CallbackResult
    transition: Transition
    reconciliation: Optional[ReconciliationResult] = field(default=None)


def _parse_metadata(stk_callback, raw):
    container = stk_callback.get("CallbackMetadata") or {}
    if not isinstance(container, dict):
        raise CallbackParseError("CallbackMetadata is not an object", raw)
    items = container.get("Item") or []
    if not isinstance(items, list):
        raise CallbackParseError("CallbackMetadata.Item is not a list", raw)

    values = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        attr = METADATA_FIELDS.get(item.get("Name"))
        if attr and "Value" in item:
            values[attr] = item["Value"]

    if values.get("receipt_number") is not None:
        values["receipt_number"] = str(values["receipt_number"])
    if values.get("phone_number") is not None:
        values["phone_number"] = str(values["phone_number"])
    return CallbackMetadata(**values)


def _result_code(value):
    """Whole-number ResultCode as int, or None. Floats and booleans are rejected."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        digits = value.strip()
        if digits.isascii() and digits.isdigit():
            return int(digits)
    return None


def parse_callback(raw) -> CallbackResult:
    """Validate an inbound callback envelope. Raises CallbackParseError."""
    if not isinstance(raw, dict):
        raise CallbackParseError("Callback body is not a JSON object", raw)

    body = raw.get("Body")
    stk_callback = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(stk_callback, dict):
        raise CallbackParseError("Missing Body.stkCallback", raw)

    checkout_request_id = stk_callback.get("CheckoutRequestID")
    if not checkout_request_id or not isinstance(checkout_request_id, str):
        raise CallbackParseError("Missing CheckoutRequestID", raw)

    if "ResultCode" not in stk_callback:
        raise CallbackParseError("Missing ResultCode", raw)
    result_code = _result_code(stk_callback["ResultCode"])
    if result_code is None:
        raise CallbackParseError(f"Non-integer ResultCode {stk_callback['ResultCode']!r}", raw)

    success = result_code == 0
    return CallbackResult(
        merchant_request_id=str(stk_callback.get("MerchantRequestID") or ""),
        checkout_request_id=checkout_request_id,
        result_code=result_code,
        result_desc=str(stk_callback.get("ResultDesc") or ""),
        success=success,
        metadata=_parse_metadata(stk_callback, raw) if success else None,
    )


class CallbackProcessor:

    def __init__(self, ledger=None, reconciler=None):
        self.ledger     = ledger     or TransactionLedger()
        self.reconciler = reconciler or OrderReconciler()

    def process(self, raw) -> CallbackOutcome:
        """
        parse → ledger transition → reconcile (first delivery only).
        Raises CallbackParseError or NotFoundError; the view acknowledges both.
        """
        result = parse_callback(raw)
        status = (PaymentTransaction.Status.COMPLETED if result.success
                  else PaymentTransaction.Status.FAILED)
        receipt_id = result.metadata.receipt_number if result.metadata else None

        transition = self.ledger.transition_to_terminal(
            result.checkout_request_id,
            status=status,
            result_code=result.result_code,
            result_desc=result.result_desc,
            receipt_id=receipt_id,
            raw_callback=raw,
        )
        if not transition.applied:
            logger.info("Duplicate callback for %s ignored (already %s)",
                        result.checkout_request_id, transition.transaction.status)
            reconciliation = None
            if transition.receipt_added:
                reconciliation = self.reconciler.attach_receipt(transition.transaction)
            return CallbackOutcome(result=result, transition=transition, reconciliation=reconciliation)

        reconciliation = self.reconciler.reconcile(transition.transaction)
        return CallbackOutcome(result=result, transition=transition, reconciliation=reconciliation)

    def record(self, raw_body: str, payload, outcome: str, checkout_request_id="", detail=""):
        """Append the inbound callback to the audit log."""
        return PaymentCallback.objects.create(
            checkout_request_id=checkout_request_id or "",
            payload=payload if isinstance(payload, (dict, list)) else None,
            raw_body=raw_body or "",
            outcome=outcome,
            detail=(detail or "")[:255],
        )
