from django.contrib import admin
from .models import PaymentTransaction, PaymentCallback


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display  = ("checkout_request_id", "order_type", "order_id", "amount", "phone_number",
                     "status", "receipt_id", "initiated_by", "created_at", "completed_at")
    list_filter   = ("status", "order_type", "initiated_by")
    search_fields = ("checkout_request_id", "merchant_request_id", "order_id", "phone_number", "receipt_id")
    readonly_fields = [f.name for f in PaymentTransaction._meta.fields]
    ordering      = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PaymentCallback)
class PaymentCallbackAdmin(admin.ModelAdmin):
    list_display  = ("checkout_request_id", "outcome", "detail", "received_at")
    list_filter   = ("outcome",)
    search_fields = ("checkout_request_id",)
    readonly_fields = ("checkout_request_id", "payload", "raw_body", "outcome", "detail", "received_at")

    def has_delete_permission(self, request, obj=None):
        return False
