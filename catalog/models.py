import uuid

from django.db import models


class Product(models.Model):
    class Category(models.TextChoices):
        FANS = "fans", "Fans"
        APPLIANCES = "appliances", "Appliances"
        ACCESSORIES = "accessories", "Accessories"
        SPARE_PARTS = "spare-parts", "Spare Parts"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    category = models.CharField(max_length=16, choices=Category.choices)
    brand = models.CharField(max_length=128, null=True, blank=True)
    image_url = models.URLField(max_length=500, null=True, blank=True)
    stock = models.IntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        indexes = [
            models.Index(fields=["is_active", "category"], name="product_active_category_idx"),
            models.Index(fields=["is_active", "stock"], name="product_active_stock_idx"),
        ]

    def __str__(self):
        return self.name


class ServiceRate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    device_type = models.CharField(max_length=128)
    service_name = models.CharField(max_length=255)
    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "service_rates"
        indexes = [
            models.Index(fields=["is_active", "device_type"], name="service_rate_active_type_idx"),
        ]

    def __str__(self):
        return f"{self.device_type}: {self.service_name}"
