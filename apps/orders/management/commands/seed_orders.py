"""Seed dummy orders of every kind for local testing and load runs (DEBUG only)."""

import random
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.orders.models import ORDER_STORES, OrderKind


class Command(BaseCommand):
    help = "Create LOAD-00001 … LOAD-<count> orders, cycling through the order kinds."

    def add_arguments(self, parser):
        parser.add_argument("--count", type=int, default=100)

    def handle(self, *args, count, **options):
        if not settings.DEBUG:
            raise CommandError("Seeding only allowed in DEBUG mode.")

        kinds = list(OrderKind)
        created = 0
        for n in range(1, count + 1):
            kind  = kinds[n % len(kinds)]
            store = ORDER_STORES[kind]
            _, was_created = store.objects.get_or_create(
                id=f"LOAD-{n:05d}",
                defaults={
                    "tracking_number": f"TF-LOAD-{n:05d}",
                    "customer_name":   f"Load Customer {n}",
                    "customer_phone":  f"07{random.randint(10000000, 99999999)}",
                    "total_cost":      Decimal(random.uniform(300, 8000)).quantize(Decimal("0.01")),
                },
            )
            created += was_created

        self.stdout.write(self.style.SUCCESS(f"Seeded {created} orders ({count - created} already present)"))
