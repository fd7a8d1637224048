"""Payment serializers. The public API speaks camelCase."""
from decimal import Decimal

from rest_framework import serializers

from apps.orders.models import OrderKind
from .models import PaymentTransaction


class PaymentInitiateSerializer(serializers.Serializer):
    orderId           = serializers.CharField(max_length=40)
    orderType         = serializers.ChoiceField(choices=OrderKind.choices)
    phoneNumber       = serializers.CharField(max_length=20)
    amount            = serializers.DecimalField(max_digits=12, decimal_places=2,
                                                 min_value=Decimal("0.50"))
    initiatedBy       = serializers.ChoiceField(choices=PaymentTransaction.Initiator.choices,
                                                default=PaymentTransaction.Initiator.CUSTOMER)
    initiatedByUserId = serializers.CharField(max_length=64, required=False, allow_blank=True)


class PaymentInitiateResponseSerializer(serializers.Serializer):
    checkoutRequestId = serializers.CharField()
    merchantRequestId = serializers.CharField()
    customerMessage   = serializers.CharField()
    transactionId     = serializers.UUIDField()


class PaymentTransactionSerializer(serializers.ModelSerializer):
    transactionId     = serializers.UUIDField(source="id", read_only=True)
    checkoutRequestId = serializers.CharField(source="checkout_request_id", read_only=True)
    merchantRequestId = serializers.CharField(source="merchant_request_id", read_only=True)
    orderId           = serializers.CharField(source="order_id", read_only=True)
    orderType         = serializers.CharField(source="order_type", read_only=True)
    phoneNumber       = serializers.CharField(source="phone_number", read_only=True)
    resultCode        = serializers.IntegerField(source="result_code", read_only=True)
    resultDesc        = serializers.CharField(source="result_desc", read_only=True)
    receiptId         = serializers.CharField(source="receipt_id", read_only=True)
    initiatedBy       = serializers.CharField(source="initiated_by", read_only=True)
    initiatedByUserId = serializers.CharField(source="initiated_by_user_id", read_only=True)
    createdAt         = serializers.DateTimeField(source="created_at", read_only=True)
    completedAt       = serializers.DateTimeField(source="completed_at", read_only=True)

    class Meta:
        model  = PaymentTransaction
        fields = ["transactionId", "checkoutRequestId", "merchantRequestId", "orderId",
                  "orderType", "phoneNumber", "amount", "currency", "status", "resultCode",
                  "resultDesc", "receiptId", "initiatedBy", "initiatedByUserId",
                  "createdAt", "completedAt"]


class PaymentStatusSerializer(serializers.Serializer):
    """Shape of GET /api/payments/status/<id>/, built from a StatusReport."""
    transactionId = serializers.UUIDField(source="transaction.id")
    status        = serializers.CharField(source="transaction.status")
    amount        = serializers.IntegerField(source="transaction.amount")
    phoneNumber   = serializers.CharField(source="transaction.phone_number")
    resultDesc    = serializers.CharField(source="transaction.result_desc")
    receiptId     = serializers.CharField(source="transaction.receipt_id")
    createdAt     = serializers.DateTimeField(source="transaction.created_at")
    completedAt   = serializers.DateTimeField(source="transaction.completed_at")
    message       = serializers.CharField()
