import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from common.identifiers import generate_device_serial
from common.utils import get_int_setting, today as local_today
from repairs.models import Booking, DeviceEntry, Warranty, WarrantyClaim

logger = logging.getLogger(__name__)

DEVICE_ENTRY_REQUIRED_FIELDS = ("customer_name", "mobile_number", "device_type", "problem_description")
BOOKING_REQUIRED_FIELDS = ("customer_name", "phone", "device_type", "issue_description")
WARRANTY_REQUIRED_FIELDS = ("customer_name", "customer_phone", "device_type")

DEVICE_ENTRY_NEXT_STATUS = {
    DeviceEntry.Status.RECEIVED: DeviceEntry.Status.IN_REPAIR,
    DeviceEntry.Status.IN_REPAIR: DeviceEntry.Status.READY,
    DeviceEntry.Status.READY: DeviceEntry.Status.DELIVERED,
}
BOOKING_NEXT_STATUS = {
    Booking.Status.PENDING: Booking.Status.IN_PROGRESS,
    Booking.Status.IN_PROGRESS: Booking.Status.COMPLETED,
}
BOOKING_OPEN_STATUSES = (Booking.Status.PENDING, Booking.Status.IN_PROGRESS)


def require_fields(data, fields):
    """Raise a field-keyed ValidationError for every missing or blank required value."""
    missing = {}
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing[field] = ["This field is required."]
    if missing:
        raise ValidationError(missing)


def _apply_patch(instance, patch):
    for field, value in patch.items():
        setattr(instance, field, value)
    instance.save()
    return instance


def _log_status_change(event, instance, previous_status):
    if previous_status != instance.status:
        logger.info(
            event,
            extra={"entity": instance._meta.db_table, "entity_id": str(instance.pk), "status": instance.status},
        )


# Device entries


def create_device_entry(data, today=None):
    require_fields(data, DEVICE_ENTRY_REQUIRED_FIELDS)
    today = today or local_today()

    values = dict(data)
    values["status"] = DeviceEntry.Status.RECEIVED
    values["received_date"] = today
    values.pop("delivered_date", None)
    if not values.get("serial_number"):
        values["serial_number"] = generate_device_serial(today)

    entry = DeviceEntry.objects.create(**values)
    logger.info(
        "device_entry_created",
        extra={"entity": "device_entries", "entity_id": str(entry.id), "status": entry.status},
    )
    return entry


def update_device_entry(entry, patch, today=None):
    """Apply a partial patch; transitions are not checked here.

    ``delivered_date`` is filled with today when the patch moves the entry to
    delivered without carrying a date of its own.
    """
    require_fields(patch, [field for field in DEVICE_ENTRY_REQUIRED_FIELDS if field in patch])
    patch = dict(patch)
    if patch.get("status") == DeviceEntry.Status.DELIVERED and not patch.get("delivered_date"):
        patch["delivered_date"] = today or local_today()

    previous_status = entry.status
    _apply_patch(entry, patch)
    _log_status_change("device_entry_status_changed", entry, previous_status)
    return entry


def next_device_entry_status(entry):
    return DEVICE_ENTRY_NEXT_STATUS.get(entry.status)


def advance_device_entry(entry, today=None):
    next_status = next_device_entry_status(entry)
    if next_status is None:
        raise ValidationError({"status": [f"No next step from '{entry.status}'."]})
    return update_device_entry(entry, {"status": next_status}, today=today)


def delete_device_entry(entry):
    entry_id = str(entry.id)
    entry.delete()
    logger.info("device_entry_deleted", extra={"entity": "device_entries", "entity_id": entry_id})


def search_device_entries(queryset, *, status=None, search=None):
    if status:
        queryset = queryset.filter(status=status)
    if search:
        search = search.strip()
        queryset = queryset.filter(
            Q(customer_name__icontains=search)
            | Q(mobile_number__icontains=search)
            | Q(serial_number__icontains=search)
            | Q(village_name__icontains=search)
            | Q(device_type__icontains=search)
        )
    return queryset


def device_entry_by_serial(serial_number):
    if not serial_number:
        return None
    return DeviceEntry.objects.filter(serial_number=serial_number.strip()).order_by("-created_at").first()


def todays_intake_count(today=None):
    return DeviceEntry.objects.filter(received_date=today or local_today()).count()


# Bookings


def create_booking(data):
    require_fields(data, BOOKING_REQUIRED_FIELDS)
    values = dict(data)
    values["status"] = Booking.Status.PENDING
    values.setdefault("priority", Booking.Priority.MEDIUM)
    values.pop("completed_date", None)

    booking = Booking.objects.create(**values)
    logger.info(
        "booking_created",
        extra={"entity": "bookings", "entity_id": str(booking.id), "status": booking.status},
    )
    return booking


def update_booking(booking, patch, today=None):
    require_fields(patch, [field for field in BOOKING_REQUIRED_FIELDS if field in patch])
    patch = dict(patch)
    if patch.get("status") == Booking.Status.COMPLETED and not patch.get("completed_date"):
        patch["completed_date"] = today or local_today()

    previous_status = booking.status
    _apply_patch(booking, patch)
    _log_status_change("booking_status_changed", booking, previous_status)
    return booking


def advance_booking(booking, today=None):
    next_status = BOOKING_NEXT_STATUS.get(booking.status)
    if next_status is None:
        raise ValidationError({"status": [f"No next step from '{booking.status}'."]})
    return update_booking(booking, {"status": next_status}, today=today)


def cancel_booking(booking):
    if booking.status not in BOOKING_OPEN_STATUSES:
        raise ValidationError({"status": [f"A '{booking.status}' booking cannot be cancelled."]})
    return update_booking(booking, {"status": Booking.Status.CANCELLED})


def search_bookings(queryset, *, status=None, priority=None, search=None):
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    if search:
        search = search.strip()
        queryset = queryset.filter(
            Q(customer_name__icontains=search) | Q(phone__icontains=search) | Q(device_type__icontains=search)
        )
    return queryset


# Warranties


def default_warranty_days():
    return get_int_setting("warranty_days", settings.DEFAULT_WARRANTY_DAYS)


def compute_end_date(start_date, warranty_days):
    return start_date + timedelta(days=int(warranty_days))


def create_warranty(data, today=None):
    require_fields(data, WARRANTY_REQUIRED_FIELDS)
    values = dict(data)
    values["start_date"] = values.get("start_date") or today or local_today()
    if values.get("warranty_days") is None:
        values["warranty_days"] = default_warranty_days()
    values["end_date"] = compute_end_date(values["start_date"], values["warranty_days"])
    values["status"] = Warranty.Status.ACTIVE
    values["claim_count"] = 0

    warranty = Warranty.objects.create(**values)
    logger.info(
        "warranty_created",
        extra={"entity": "warranties", "entity_id": str(warranty.id), "status": warranty.status},
    )
    return warranty


def update_warranty(warranty, patch):
    require_fields(patch, [field for field in WARRANTY_REQUIRED_FIELDS if field in patch])
    patch = dict(patch)
    patch.pop("claim_count", None)
    new_status = patch.get("status")
    if new_status and new_status != warranty.status:
        # Void is one-way and only reachable through void_warranty.
        if warranty.status == Warranty.Status.VOID:
            raise ValidationError({"status": ["A void warranty cannot change status."]})
        if new_status == Warranty.Status.VOID:
            raise ValidationError({"status": ["Use the void action to void a warranty."]})
    if ("start_date" in patch or "warranty_days" in patch) and "end_date" not in patch:
        patch["end_date"] = compute_end_date(
            patch.get("start_date") or warranty.start_date,
            patch["warranty_days"] if patch.get("warranty_days") is not None else warranty.warranty_days,
        )

    previous_status = warranty.status
    _apply_patch(warranty, patch)
    _log_status_change("warranty_status_changed", warranty, previous_status)
    return warranty


def is_within_window(warranty, today=None):
    """Stored status alone does not make a warranty valid; the end date must not have passed."""
    today = today or local_today()
    return warranty.status == Warranty.Status.ACTIVE and warranty.end_date >= today


def is_expired(warranty, today=None):
    return warranty.end_date < (today or local_today())


def active_warranties(today=None):
    today = today or local_today()
    return Warranty.objects.filter(status=Warranty.Status.ACTIVE, end_date__gte=today).order_by("end_date")


def expiring_warranties(days=7, today=None):
    today = today or local_today()
    return Warranty.objects.filter(
        status=Warranty.Status.ACTIVE,
        end_date__gte=today,
        end_date__lte=today + timedelta(days=days),
    ).order_by("end_date")


def void_warranty(warranty):
    if warranty.status == Warranty.Status.VOID:
        return warranty
    warranty.status = Warranty.Status.VOID
    warranty.save(update_fields=["status", "updated_at"])
    logger.info(
        "warranty_voided",
        extra={"entity": "warranties", "entity_id": str(warranty.id), "status": warranty.status},
    )
    return warranty


def record_warranty_claim(warranty, issue_description, today=None):
    require_fields({"issue_description": issue_description}, ["issue_description"])
    with transaction.atomic():
        claim = WarrantyClaim.objects.create(
            warranty=warranty,
            claim_date=today or local_today(),
            issue_description=issue_description,
        )
        Warranty.objects.filter(pk=warranty.pk).update(claim_count=F("claim_count") + 1, updated_at=timezone.now())
    warranty.refresh_from_db(fields=["claim_count", "updated_at"])
    logger.info(
        "warranty_claim_recorded",
        extra={"entity": "warranty_claims", "entity_id": str(claim.id), "status": claim.status},
    )
    return claim
