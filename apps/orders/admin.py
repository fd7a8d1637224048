from django.contrib import admin
from .models import Parcel, ColdChainBooking, InternationalShipment, SpecialDelivery


class PayableOrderAdmin(admin.ModelAdmin):
    list_display  = ("tracking_number", "customer_name", "customer_phone", "total_cost",
                     "payment_status", "mpesa_transaction_id", "paid_at", "created_at")
    list_filter   = ("payment_status",)
    search_fields = ("tracking_number", "customer_phone", "mpesa_transaction_id", "mpesa_checkout_id")
    readonly_fields = ("id", "payment_status", "mpesa_transaction_id", "mpesa_checkout_id",
                       "paid_at", "created_at", "updated_at")
    ordering      = ("-created_at",)


admin.site.register(Parcel, PayableOrderAdmin)
admin.site.register(ColdChainBooking, PayableOrderAdmin)
admin.site.register(InternationalShipment, PayableOrderAdmin)
admin.site.register(SpecialDelivery, PayableOrderAdmin)
