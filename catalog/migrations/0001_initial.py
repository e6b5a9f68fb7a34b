import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("fans", "Fans"),
                            ("appliances", "Appliances"),
                            ("accessories", "Accessories"),
                            ("spare-parts", "Spare Parts"),
                        ],
                        max_length=16,
                    ),
                ),
                ("brand", models.CharField(blank=True, max_length=128, null=True)),
                ("image_url", models.URLField(blank=True, max_length=500, null=True)),
                ("stock", models.IntegerField(default=0)),
                ("is_featured", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "products",
                "indexes": [
                    models.Index(fields=["is_active", "category"], name="product_active_category_idx"),
                    models.Index(fields=["is_active", "stock"], name="product_active_stock_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ServiceRate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("device_type", models.CharField(max_length=128)),
                ("service_name", models.CharField(max_length=255)),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("description", models.TextField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "service_rates",
                "indexes": [
                    models.Index(fields=["is_active", "device_type"], name="service_rate_active_type_idx"),
                ],
            },
        ),
    ]
