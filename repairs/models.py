import uuid

from django.db import models


class DeviceEntry(models.Model):
    """Walk-in intake record written in the shop notebook."""

    class Status(models.TextChoices):
        RECEIVED = "received", "Received"
        IN_REPAIR = "in-repair", "In Repair"
        READY = "ready", "Ready"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class WindingType(models.TextChoices):
        COPPER = "copper", "Copper"
        ALUMINIUM = "aluminium", "Aluminium"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_name = models.CharField(max_length=255)
    mobile_number = models.CharField(max_length=32)
    village_name = models.CharField(max_length=255, null=True, blank=True)
    address = models.TextField(null=True, blank=True)
    device_type = models.CharField(max_length=128)
    device_brand = models.CharField(max_length=128, null=True, blank=True)
    device_model = models.CharField(max_length=128, null=True, blank=True)
    serial_number = models.CharField(max_length=32, null=True, blank=True)
    winding_type = models.CharField(max_length=16, choices=WindingType.choices, null=True, blank=True)
    motor_hp = models.CharField(max_length=32, null=True, blank=True)
    problem_description = models.TextField()
    accessories_received = models.TextField(null=True, blank=True)
    estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    advance_paid = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    final_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.RECEIVED)
    received_date = models.DateField()
    expected_delivery = models.DateField(null=True, blank=True)
    delivered_date = models.DateField(null=True, blank=True)
    technician_name = models.CharField(max_length=255, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "device_entries"
        indexes = [
            models.Index(fields=["status", "created_at"], name="device_entry_status_idx"),
            models.Index(fields=["serial_number"], name="device_entry_serial_idx"),
            models.Index(fields=["mobile_number"], name="device_entry_mobile_idx"),
            models.Index(fields=["received_date"], name="device_entry_received_idx"),
        ]

    def __str__(self):
        return f"{self.serial_number or self.id} {self.customer_name}"


class Booking(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in-progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    email = models.EmailField(null=True, blank=True)
    device_type = models.CharField(max_length=128)
    brand = models.CharField(max_length=128, null=True, blank=True)
    issue_description = models.TextField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    priority = models.CharField(max_length=8, choices=Priority.choices, default=Priority.MEDIUM)
    estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    actual_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    technician_name = models.CharField(max_length=255, null=True, blank=True)
    technician_phone = models.CharField(max_length=32, null=True, blank=True)
    scheduled_date = models.DateField(null=True, blank=True)
    completed_date = models.DateField(null=True, blank=True)
    warranty_until = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "bookings"
        indexes = [
            models.Index(fields=["status", "created_at"], name="booking_status_created_idx"),
            models.Index(fields=["phone"], name="booking_phone_idx"),
            models.Index(fields=["created_at"], name="booking_created_idx"),
        ]

    def __str__(self):
        return f"{self.customer_name} ({self.device_type})"


class Warranty(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        CLAIMED = "claimed", "Claimed"
        VOID = "void", "Void"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=32)
    device_type = models.CharField(max_length=128)
    device_brand = models.CharField(max_length=128, null=True, blank=True)
    serial_number = models.CharField(max_length=64, null=True, blank=True)
    start_date = models.DateField()
    warranty_days = models.PositiveIntegerField()
    end_date = models.DateField()
    service_description = models.TextField(null=True, blank=True)
    technician_name = models.CharField(max_length=255, null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    claim_count = models.PositiveIntegerField(default=0)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "warranties"
        indexes = [
            models.Index(fields=["status", "end_date"], name="warranty_status_end_idx"),
            models.Index(fields=["customer_phone"], name="warranty_phone_idx"),
        ]

    def __str__(self):
        return f"{self.customer_name} {self.device_type} until {self.end_date}"


class WarrantyClaim(models.Model):
    class Status(models.TextChoices):
        OPEN = "open", "Open"
        RESOLVED = "resolved", "Resolved"
        REJECTED = "rejected", "Rejected"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    warranty = models.ForeignKey(Warranty, on_delete=models.CASCADE, related_name="claims")
    claim_date = models.DateField()
    issue_description = models.TextField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.OPEN)
    resolution = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "warranty_claims"
        indexes = [
            models.Index(fields=["warranty", "created_at"], name="warranty_claim_created_idx"),
        ]
