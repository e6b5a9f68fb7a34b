import uuid

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("phone", models.CharField(max_length=32)),
                ("address", models.TextField(blank=True, null=True)),
                ("total_repairs", models.PositiveIntegerField(default=0)),
                ("total_spent", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("is_vip", models.BooleanField(default=False)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "customers",
                "indexes": [
                    models.Index(fields=["phone"], name="customer_phone_idx"),
                    models.Index(fields=["email"], name="customer_email_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("invoice_number", models.CharField(max_length=32)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_phone", models.CharField(max_length=32)),
                ("customer_address", models.TextField(blank=True, null=True)),
                ("items", models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("subtotal", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("tax_percent", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[("cash", "Cash"), ("upi", "UPI"), ("card", "Card"), ("bank", "Bank Transfer")],
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("unpaid", "Unpaid"), ("partial", "Partial"), ("paid", "Paid")],
                        default="unpaid",
                        max_length=8,
                    ),
                ),
                ("payment_date", models.DateField(blank=True, null=True)),
                ("invoice_date", models.DateField()),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "invoices",
                "indexes": [
                    models.Index(fields=["invoice_number"], name="invoice_number_idx"),
                    models.Index(fields=["payment_status", "created_at"], name="invoice_status_created_idx"),
                    models.Index(fields=["customer_phone"], name="invoice_customer_phone_idx"),
                ],
            },
        ),
    ]
