import uuid
import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                ("id",                  models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("checkout_request_id", models.CharField(editable=False, max_length=100, unique=True)),
                ("merchant_request_id", models.CharField(blank=True, max_length=100)),
                ("order_id",            models.CharField(max_length=40)),
                ("order_type",          models.CharField(
                    choices=[
                        ("regular",       "Regular parcel"),
                        ("cold_chain",    "Cold-chain booking"),
                        ("international", "International shipment"),
                        ("special",       "Special delivery"),
                    ],
                    max_length=15,
                )),
                ("phone_number",        models.CharField(max_length=15)),
                ("amount",              models.PositiveIntegerField(
                    validators=[django.core.validators.MinValueValidator(1)],
                )),
                ("currency",            models.CharField(default="KES", max_length=3)),
                ("status",              models.CharField(
                    choices=[
                        ("pending",   "Pending"),
                        ("completed", "Completed"),
                        ("failed",    "Failed"),
                    ],
                    default="pending",
                    max_length=10,
                )),
                ("result_code",         models.IntegerField(blank=True, null=True)),
                ("result_desc",         models.CharField(blank=True, max_length=255)),
                ("receipt_id",          models.CharField(blank=True, max_length=40)),
                ("initiated_by",        models.CharField(
                    choices=[("customer", "Customer"), ("staff", "Staff")],
                    default="customer",
                    max_length=10,
                )),
                ("initiated_by_user_id", models.CharField(blank=True, max_length=64)),
                ("raw_callback",        models.JSONField(blank=True, null=True)),
                ("created_at",          models.DateTimeField(auto_now_add=True)),
                ("updated_at",          models.DateTimeField(auto_now=True)),
                ("completed_at",        models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.AddIndex(
            model_name="paymenttransaction",
            index=models.Index(fields=["order_id", "order_type"], name="pay_order_idx"),
        ),
        migrations.AddIndex(
            model_name="paymenttransaction",
            index=models.Index(fields=["status", "created_at"], name="pay_status_created_idx"),
        ),
        migrations.CreateModel(
            name="PaymentCallback",
            fields=[
                ("id",                  models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("checkout_request_id", models.CharField(blank=True, db_index=True, max_length=100)),
                ("payload",             models.JSONField(blank=True, null=True)),
                ("raw_body",            models.TextField(blank=True)),
                ("outcome",             models.CharField(
                    blank=True,
                    choices=[
                        ("applied",   "Applied"),
                        ("duplicate", "Duplicate (already terminal)"),
                        ("unknown",   "Unknown checkout id"),
                        ("malformed", "Malformed payload"),
                        ("error",     "Processing error"),
                    ],
                    max_length=10,
                )),
                ("detail",              models.CharField(blank=True, max_length=255)),
                ("received_at",         models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["-received_at"]},
        ),
    ]
