"""Payment views — initiate STK push, receive callback, poll status, history."""

import json
import logging

from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiExample

from apps.orders.models import OrderKind
from apps.payments.exceptions import (
    AuthenticationError, CallbackParseError, DuplicateCheckoutIdError, GatewayError,
    GatewayTimeoutError, NotFoundError,
)
from apps.payments.models import PaymentCallback, PaymentTransaction
from apps.payments.serializers import (
    PaymentInitiateSerializer, PaymentInitiateResponseSerializer,
    PaymentStatusSerializer, PaymentTransactionSerializer,
)
from apps.payments.service import PaymentService

logger = logging.getLogger("trackflow.payments")
payment_service = PaymentService()

UNAVAILABLE_MESSAGE = "Payment service is temporarily unavailable. Please try again later."
TIMEOUT_MESSAGE     = "The payment service did not respond in time. Please try again."


def _ack(desc):
    """The only response Daraja ever gets from the callback endpoint."""
    return Response({"ResultCode": 0, "ResultDesc": desc}, status=status.HTTP_200_OK)


# ── POST /api/payments/initiate/ ─────────────────────────────────────────────
@extend_schema(
    tags=["Payments"],
    summary="Send an M-Pesa STK push for an order",
    request=PaymentInitiateSerializer,
    responses={200: PaymentInitiateResponseSerializer},
    examples=[
        OpenApiExample(
            "Regular parcel",
            value={"orderId": "P100", "orderType": "regular",
                   "phoneNumber": "0712345678", "amount": 850, "initiatedBy": "customer"},
        )
    ],
)
class PaymentInitiateView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = PaymentInitiateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data

        try:
            result = payment_service.initiate_payment(
                order_id=d["orderId"],
                order_type=d["orderType"],
                phone_number=d["phoneNumber"],
                amount=d["amount"],
                initiated_by=d["initiatedBy"],
                initiated_by_user_id=d.get("initiatedByUserId", ""),
            )
        except NotFoundError:
            return Response({"message": "Order not found."}, status=status.HTTP_404_NOT_FOUND)
        except AuthenticationError as exc:
            logger.error("Payment initiation for %s blocked: %s", d["orderId"], exc)
            return Response({"message": UNAVAILABLE_MESSAGE},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except GatewayTimeoutError as exc:
            logger.error("Payment initiation for %s timed out: %s", d["orderId"], exc)
            return Response({"message": TIMEOUT_MESSAGE},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except GatewayError as exc:
            logger.warning("Payment initiation for %s rejected: %s", d["orderId"], exc)
            return Response({"message": exc.message or "Failed to initiate payment."},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except DuplicateCheckoutIdError as exc:
            logger.error("Provider reused checkout id for %s: %s", d["orderId"], exc)
            return Response({"message": "Failed to initiate payment."},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        txn = result.transaction
        return Response({
            "checkoutRequestId": txn.checkout_request_id,
            "merchantRequestId": txn.merchant_request_id,
            "customerMessage":   result.customer_message,
            "transactionId":     str(txn.id),
        }, status=status.HTTP_200_OK)


# ── POST /api/payments/callback/ ──────────────────────────────────────────────
@extend_schema(
    tags=["Payments"],
    summary="Receive the M-Pesa STK push result (webhook)",
)
@method_decorator(csrf_exempt, name="dispatch")
class PaymentCallbackView(APIView):
    """
    Receives async callbacks from Daraja.
    Always answers 200 {"ResultCode": 0}: any other answer makes the provider
    redeliver, and a payload we cannot process will not improve on retry.
    Failures are logged and kept in PaymentCallback instead.
    """
    permission_classes = [AllowAny]
    authentication_classes = []   # webhooks are not session-authenticated
    throttle_classes = []         # callbacks are never rate limited

    def post(self, request):
        raw_body = request.body.decode("utf-8", errors="replace")
        try:
            return _ack(self._handle(raw_body))
        except Exception:
            logger.exception("M-Pesa callback handling failed: %s", raw_body[:2000])
            return _ack("Callback received")

    def _handle(self, raw_body):
        processor = payment_service.callbacks
        Outcome   = PaymentCallback.Outcome

        try:
            payload = json.loads(raw_body) if raw_body.strip() else None
        except json.JSONDecodeError as exc:
            logger.error("M-Pesa callback is not JSON (%s): %s", exc, raw_body[:2000])
            processor.record(raw_body, None, Outcome.MALFORMED, detail=str(exc))
            return "Callback received"

        try:
            outcome = processor.process(payload)
        except CallbackParseError as exc:
            logger.error("Malformed M-Pesa callback (%s): %s", exc, raw_body[:2000])
            processor.record(raw_body, payload, Outcome.MALFORMED, detail=str(exc))
            return "Callback received"
        except NotFoundError as exc:
            checkout_id = exc.context.get("checkout_request_id", "")
            logger.warning("Callback for unknown checkout id %s", checkout_id)
            processor.record(raw_body, payload, Outcome.UNKNOWN,
                             checkout_request_id=checkout_id, detail=str(exc))
            return "Callback received"
        except Exception as exc:
            logger.exception("M-Pesa callback processing failed: %s", raw_body[:2000])
            processor.record(raw_body, payload, Outcome.ERROR, detail=str(exc))
            return "Callback received"

        checkout_id = outcome.result.checkout_request_id
        if outcome.transition.applied:
            processor.record(raw_body, payload, Outcome.APPLIED, checkout_request_id=checkout_id)
            logger.info("Payment %s for checkout %s",
                        outcome.transition.transaction.status, checkout_id)
        else:
            detail = "receipt attached" if outcome.transition.receipt_added else ""
            processor.record(raw_body, payload, Outcome.DUPLICATE,
                             checkout_request_id=checkout_id, detail=detail)
        return "Callback processed successfully"


# ── GET /api/payments/status/<checkout_request_id>/ ──────────────────────────
@extend_schema(
    tags=["Payments"],
    summary="Poll the state of a payment",
    responses={200: PaymentStatusSerializer},
)
class PaymentStatusView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, checkout_request_id):
        try:
            report = payment_service.get_status(checkout_request_id)
        except NotFoundError:
            return Response({"message": "Payment transaction not found."},
                            status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentStatusSerializer(report).data)


# ── GET /api/payments/history/<order_id>/<order_type>/ ───────────────────────
@extend_schema(
    tags=["Payments"],
    summary="All payment attempts for an order, newest first",
    responses={200: PaymentTransactionSerializer(many=True)},
)
class PaymentHistoryView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, order_id, order_type):
        if order_type not in OrderKind.values:
            return Response({"message": f"Unknown order type: {order_type}"},
                            status=status.HTTP_400_BAD_REQUEST)
        transactions = payment_service.history(order_id, order_type)
        return Response(PaymentTransactionSerializer(transactions, many=True).data)


# ── GET /api/payments/transactions/ ───────────────────────────────────────────
@extend_schema(tags=["Payments"], summary="Support view of all payment transactions (staff only)")
class PaymentTransactionListView(generics.ListAPIView):
    serializer_class   = PaymentTransactionSerializer
    permission_classes = [IsAdminUser]
    filter_backends    = [DjangoFilterBackend]
    filterset_fields   = ["status", "order_type", "initiated_by", "order_id"]
    queryset           = PaymentTransaction.objects.all()
