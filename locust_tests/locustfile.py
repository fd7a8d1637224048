"""
TrackFlow Load Test — Locust Script
====================================
Simulates customers paying for parcels at the evening peak while Daraja
redelivers callbacks.

Usage:
    python manage.py seed_orders --count 500
    python docker/mocks/daraja_server.py &
    MPESA_GATEWAY=daraja MPESA_BASE_URL=http://localhost:8004 python manage.py runserver
    locust -f locust_tests/locustfile.py --host=http://localhost:8000 \
           --users=500 --spawn-rate=50 --run-time=5m --headless
"""

import random
import time
from locust import HttpUser, task, between, events

SEEDED_ORDERS = 500                       # must match seed_orders --count
ORDER_TYPES   = ["regular", "cold_chain", "international", "special"]
PHONE_PREFIX  = ["0712", "0722", "0733", "0745", "+254710"]


def _order():
    n = random.randint(1, SEEDED_ORDERS)
    order_type = ORDER_TYPES[n % len(ORDER_TYPES)]
    return f"LOAD-{n:05d}", order_type


class PayingCustomer(HttpUser):
    """
    A customer taps "Pay with M-Pesa" and then polls until the app shows a result.
    Tasks weighted to reflect real-world usage patterns.
    """
    wait_time = between(1.0, 3.0)

    def _phone(self):
        return random.choice(PHONE_PREFIX) + str(random.randint(100000, 999999))

    # ── Tasks (weighted) ──────────────────────────────────────────────────────

    @task(5)
    def pay_and_poll(self):
        order_id, order_type = _order()
        resp = self.client.post(
            "/api/payments/initiate/",
            json={
                "orderId":     order_id,
                "orderType":   order_type,
                "phoneNumber": self._phone(),
                "amount":      random.choice([350, 850, 1500.60, 4200]),
                "initiatedBy": "customer",
            },
            name="/api/payments/initiate/",
        )
        if resp.status_code != 200:
            return

        checkout_id = resp.json()["checkoutRequestId"]
        for _ in range(5):
            time.sleep(2)
            status = self.client.get(
                f"/api/payments/status/{checkout_id}/",
                name="/api/payments/status/[id]/",
            )
            if status.status_code == 200 and status.json().get("status") != "pending":
                break

    @task(2)
    def payment_history(self):
        order_id, order_type = _order()
        self.client.get(
            f"/api/payments/history/{order_id}/{order_type}/",
            name="/api/payments/history/[order]/[type]/",
        )

    @task(1)
    def health_check(self):
        """Simulates monitoring pings — ensures health endpoint is fast."""
        self.client.get("/api/health/deep/", name="/api/health/deep/")


class RedeliveringProvider(HttpUser):
    """
    Replays callbacks for checkout ids that do not exist, and garbage bodies.
    Every one of them must still get a 200 acknowledgement.
    """
    wait_time = between(0.5, 1.5)
    weight    = 1

    @task(3)
    def unknown_checkout(self):
        with self.client.post(
            "/api/payments/callback/",
            json={"Body": {"stkCallback": {
                "MerchantRequestID": "load-test",
                "CheckoutRequestID": f"ws_CO_LOAD{random.randint(1, 10**9)}",
                "ResultCode":        1032,
                "ResultDesc":        "Request cancelled by user",
            }}},
            name="/api/payments/callback/ [unknown]",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200 or resp.json().get("ResultCode") != 0:
                resp.failure("callback not acknowledged")

    @task(1)
    def malformed(self):
        with self.client.post(
            "/api/payments/callback/",
            data="{not json",
            headers={"Content-Type": "application/json"},
            name="/api/payments/callback/ [malformed]",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                resp.failure("malformed callback not acknowledged")


# ── Custom events for Locust reporting ────────────────────────────────────────
@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print("\n=== TrackFlow Payments Load Test Complete ===")
    stats = environment.stats.total
    print(f"Total requests:      {stats.num_requests}")
    print(f"Failures:            {stats.num_failures}")
    print(f"Avg response time:   {stats.avg_response_time:.0f}ms")
    print(f"95th percentile:     {stats.get_response_time_percentile(0.95):.0f}ms")
    print(f"Requests/sec:        {stats.current_rps:.1f}")
    if stats.num_failures / max(stats.num_requests, 1) > 0.01:
        print("⚠ FAILURE RATE > 1%")
    else:
        print("✓ Payments stable under load")
