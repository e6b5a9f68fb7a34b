import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="DeviceEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_name", models.CharField(max_length=255)),
                ("mobile_number", models.CharField(max_length=32)),
                ("village_name", models.CharField(blank=True, max_length=255, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("device_type", models.CharField(max_length=128)),
                ("device_brand", models.CharField(blank=True, max_length=128, null=True)),
                ("device_model", models.CharField(blank=True, max_length=128, null=True)),
                ("serial_number", models.CharField(blank=True, max_length=32, null=True)),
                (
                    "winding_type",
                    models.CharField(
                        blank=True,
                        choices=[("copper", "Copper"), ("aluminium", "Aluminium"), ("other", "Other")],
                        max_length=16,
                        null=True,
                    ),
                ),
                ("motor_hp", models.CharField(blank=True, max_length=32, null=True)),
                ("problem_description", models.TextField()),
                ("accessories_received", models.TextField(blank=True, null=True)),
                ("estimated_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("advance_paid", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("final_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("in-repair", "In Repair"),
                            ("ready", "Ready"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="received",
                        max_length=16,
                    ),
                ),
                ("received_date", models.DateField()),
                ("expected_delivery", models.DateField(blank=True, null=True)),
                ("delivered_date", models.DateField(blank=True, null=True)),
                ("technician_name", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "device_entries",
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="device_entry_status_idx"),
                    models.Index(fields=["serial_number"], name="device_entry_serial_idx"),
                    models.Index(fields=["mobile_number"], name="device_entry_mobile_idx"),
                    models.Index(fields=["received_date"], name="device_entry_received_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_name", models.CharField(max_length=255)),
                ("phone", models.CharField(max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("device_type", models.CharField(max_length=128)),
                ("brand", models.CharField(blank=True, max_length=128, null=True)),
                ("issue_description", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in-progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")],
                        default="medium",
                        max_length=8,
                    ),
                ),
                ("estimated_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("actual_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("technician_name", models.CharField(blank=True, max_length=255, null=True)),
                ("technician_phone", models.CharField(blank=True, max_length=32, null=True)),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                ("completed_date", models.DateField(blank=True, null=True)),
                ("warranty_until", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "bookings",
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="booking_status_created_idx"),
                    models.Index(fields=["phone"], name="booking_phone_idx"),
                    models.Index(fields=["created_at"], name="booking_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Warranty",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_phone", models.CharField(max_length=32)),
                ("device_type", models.CharField(max_length=128)),
                ("device_brand", models.CharField(blank=True, max_length=128, null=True)),
                ("serial_number", models.CharField(blank=True, max_length=64, null=True)),
                ("start_date", models.DateField()),
                ("warranty_days", models.PositiveIntegerField()),
                ("end_date", models.DateField()),
                ("service_description", models.TextField(blank=True, null=True)),
                ("technician_name", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("expired", "Expired"), ("claimed", "Claimed"), ("void", "Void")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("claim_count", models.PositiveIntegerField(default=0)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "warranties",
                "indexes": [
                    models.Index(fields=["status", "end_date"], name="warranty_status_end_idx"),
                    models.Index(fields=["customer_phone"], name="warranty_phone_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WarrantyClaim",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("claim_date", models.DateField()),
                ("issue_description", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("resolved", "Resolved"), ("rejected", "Rejected")],
                        default="open",
                        max_length=16,
                    ),
                ),
                ("resolution", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "warranty",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="claims",
                        to="repairs.warranty",
                    ),
                ),
            ],
            options={
                "db_table": "warranty_claims",
                "indexes": [
                    models.Index(fields=["warranty", "created_at"], name="warranty_claim_created_idx"),
                ],
            },
        ),
    ]
