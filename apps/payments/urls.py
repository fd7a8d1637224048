from django.urls import path
from .views import (
    PaymentInitiateView, PaymentCallbackView, PaymentStatusView,
    PaymentHistoryView, PaymentTransactionListView,
)

urlpatterns = [
    path("initiate/",                             PaymentInitiateView.as_view(),        name="payment-initiate"),
    path("callback/",                             PaymentCallbackView.as_view(),        name="payment-callback"),
    path("status/<str:checkout_request_id>/",     PaymentStatusView.as_view(),          name="payment-status"),
    path("history/<str:order_id>/<str:order_type>/", PaymentHistoryView.as_view(),      name="payment-history"),
    path("transactions/",                         PaymentTransactionListView.as_view(), name="payment-transactions"),
]
