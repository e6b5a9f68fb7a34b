"""Track Repair: find a customer's device entries, bookings and warranties.

A serial lookup searches device entries only (case-insensitive, partial).
A phone lookup runs one exact-match query per table and concatenates the
rows without deduplication. A source that errors is reported in
``failed_sources``; the lookup only fails when every source fails.
"""

import logging

from django.db import DatabaseError, transaction
from rest_framework.exceptions import ValidationError

from common.exceptions import LookupFailed
from common.utils import today as local_today
from repairs.models import Booking, DeviceEntry, Warranty
from repairs.services import is_expired

logger = logging.getLogger(__name__)

MODE_SERIAL = "serial"
MODE_PHONE = "phone"

KIND_DEVICE_ENTRY = "device_entry"
KIND_BOOKING = "booking"
KIND_WARRANTY = "warranty"

TRACKING_STEPS = {
    DeviceEntry.Status.RECEIVED: 1,
    Booking.Status.PENDING: 1,
    DeviceEntry.Status.IN_REPAIR: 2,
    Booking.Status.IN_PROGRESS: 2,
    DeviceEntry.Status.READY: 3,
    Booking.Status.COMPLETED: 3,
    DeviceEntry.Status.DELIVERED: 4,
    DeviceEntry.Status.CANCELLED: 0,
}


def tracking_step(status):
    """Shared 1-4 progress step across device entry and booking statuses; 0 is off the track."""
    return TRACKING_STEPS.get(status, 0)


def _sources(mode, value):
    if mode == MODE_SERIAL:
        return [
            (KIND_DEVICE_ENTRY, lambda: DeviceEntry.objects.filter(serial_number__icontains=value)),
        ]
    return [
        (KIND_DEVICE_ENTRY, lambda: DeviceEntry.objects.filter(mobile_number=value)),
        (KIND_BOOKING, lambda: Booking.objects.filter(phone=value)),
        (KIND_WARRANTY, lambda: Warranty.objects.filter(customer_phone=value)),
    ]


def _match(kind, record, today):
    match = {"kind": kind, "record": record}
    if kind == KIND_WARRANTY:
        match["is_expired"] = is_expired(record, today)
    else:
        match["tracking_step"] = tracking_step(record.status)
    return match


def track_repairs(mode, value, today=None):
    if mode not in (MODE_SERIAL, MODE_PHONE):
        raise ValidationError({"mode": [f"Expected '{MODE_SERIAL}' or '{MODE_PHONE}'."]})
    value = (value or "").strip()
    if not value:
        raise ValidationError({"value": ["Enter a serial number or phone number."]})

    today = today or local_today()
    sources = _sources(mode, value)
    results = []
    failed_sources = []
    for kind, query in sources:
        try:
            with transaction.atomic():
                records = list(query().order_by("-created_at"))
        except DatabaseError:
            logger.exception("track_source_failed", extra={"entity": kind})
            failed_sources.append(kind)
            continue
        results.extend(_match(kind, record, today) for record in records)

    if len(failed_sources) == len(sources):
        raise LookupFailed()

    logger.info("track_lookup mode=%s results=%s failed=%s", mode, len(results), len(failed_sources))
    return {"mode": mode, "results": results, "failed_sources": failed_sources}
