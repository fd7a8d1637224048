"""
Operations views:
  - Deep health check (DB, cache, disk, payment gateway mode)
  - Prometheus-formatted payment metrics
"""

import os
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.db.models import Count, Sum
from django.http import HttpResponse
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAdminUser, AllowAny
from drf_spectacular.utils import extend_schema

from apps.payments.models import PaymentCallback, PaymentTransaction

logger = logging.getLogger("trackflow.ops")


# ── GET /api/health/deep/ ─────────────────────────────────────────────────────
@extend_schema(tags=["Ops"], summary="Deep health check — DB, cache, disk")
class DeepHealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        checks = {}

        # Database
        try:
            with connection.cursor() as cur:
                cur.execute("SELECT 1")
            checks["database"] = "ok"
        except Exception as exc:
            logger.error("Health check: database unreachable: %s", exc)
            checks["database"] = f"error: {exc}"

        # Cache (holds the M-Pesa access token)
        try:
            cache.set("healthcheck", "1", 5)
            checks["cache"] = "ok" if cache.get("healthcheck") == "1" else "miss"
        except Exception as exc:
            logger.error("Health check: cache unreachable: %s", exc)
            checks["cache"] = f"error: {exc}"

        # Disk
        try:
            stat  = os.statvfs("/")
            free_gb = (stat.f_bavail * stat.f_frsize) / (1024 ** 3)
            checks["disk_free_gb"] = round(free_gb, 2)
            checks["disk"] = "ok" if free_gb > 1 else "low"
        except (AttributeError, OSError) as exc:
            checks["disk"] = f"error: {exc}"

        overall = "ok" if all(checks.get(k) == "ok" for k in ("database", "cache", "disk")) \
            else "degraded"
        return Response({
            "status":  overall,
            "gateway": getattr(settings, "MPESA_GATEWAY", "daraja"),
            "checks":  checks,
        })


# ── GET /api/ops/metrics/ ────────────────────────────────────────────────────
@extend_schema(tags=["Ops"], summary="Prometheus-formatted payment metrics (staff only)")
class MetricsView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        payment_counts = dict(
            PaymentTransaction.objects.values_list("status").annotate(c=Count("id"))
        )
        callback_counts = dict(
            PaymentCallback.objects.values_list("outcome").annotate(c=Count("id"))
        )
        total_revenue = PaymentTransaction.objects.filter(
            status=PaymentTransaction.Status.COMPLETED
        ).aggregate(t=Sum("amount"))["t"] or 0

        # Prometheus text format
        lines = [
            "# HELP trackflow_payments_total Payment transactions by status",
            "# TYPE trackflow_payments_total gauge",
        ]
        for status in PaymentTransaction.Status.values:
            lines.append(f'trackflow_payments_total{{status="{status}"}} {payment_counts.get(status, 0)}')
        lines += [
            "",
            "# HELP trackflow_payment_callbacks_total M-Pesa callbacks by outcome",
            "# TYPE trackflow_payment_callbacks_total gauge",
        ]
        for outcome in PaymentCallback.Outcome.values:
            lines.append(
                f'trackflow_payment_callbacks_total{{outcome="{outcome}"}} {callback_counts.get(outcome, 0)}'
            )
        lines += [
            "",
            "# HELP trackflow_revenue_kes Total completed payments in KES",
            "# TYPE trackflow_revenue_kes gauge",
            f"trackflow_revenue_kes {total_revenue}",
        ]
        return HttpResponse("\n".join(lines), content_type="text/plain; version=0.0.4")
