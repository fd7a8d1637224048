import django.core.validators
from django.db import migrations, models

import apps.orders.models


PAYMENT_STATUS_CHOICES = [
    ("unpaid",    "Unpaid"),
    ("pending",   "Pending"),
    ("completed", "Completed"),
    ("failed",    "Failed"),
]


def _payable_fields():
    return [
        ("id",              models.CharField(default=apps.orders.models._new_order_id, editable=False,
                                             max_length=40, primary_key=True, serialize=False)),
        ("tracking_number", models.CharField(db_index=True, max_length=30, unique=True)),
        ("customer_name",   models.CharField(blank=True, max_length=120)),
        ("customer_phone",  models.CharField(blank=True, max_length=20)),
        ("customer_email",  models.EmailField(blank=True, max_length=254)),
        ("total_cost",      models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True,
                                                validators=[django.core.validators.MinValueValidator(0)])),
        ("shipping_cost",   models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True,
                                                validators=[django.core.validators.MinValueValidator(0)])),
        ("payment_status",  models.CharField(choices=PAYMENT_STATUS_CHOICES, default="unpaid", max_length=10)),
        ("mpesa_transaction_id", models.CharField(blank=True, max_length=40)),
        ("mpesa_checkout_id",    models.CharField(blank=True, max_length=100)),
        ("paid_at",         models.DateTimeField(blank=True, null=True)),
        ("created_at",      models.DateTimeField(auto_now_add=True)),
        ("updated_at",      models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Parcel",
            fields=_payable_fields() + [
                ("sender_address",    models.CharField(blank=True, max_length=255)),
                ("recipient_name",    models.CharField(blank=True, max_length=120)),
                ("recipient_address", models.CharField(blank=True, max_length=255)),
                ("weight_kg",         models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="ColdChainBooking",
            fields=_payable_fields() + [
                ("product_type",      models.CharField(blank=True, max_length=80)),
                ("temperature_range", models.CharField(blank=True, max_length=30)),
                ("pickup_date",       models.DateField(blank=True, null=True)),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="InternationalShipment",
            fields=_payable_fields() + [
                ("destination_country", models.CharField(blank=True, max_length=60)),
                ("declared_value",      models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="SpecialDelivery",
            fields=_payable_fields() + [
                ("delivery_type",        models.CharField(blank=True, max_length=60)),
                ("special_instructions", models.TextField(blank=True)),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
    ]
