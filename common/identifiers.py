"""Human-readable identifiers printed on receipts and invoices.

Two strategies produce the same formats:

* the store-side sequence (``IdentifierSequence`` rows, incremented under a
  row lock) yields ``RE<YYMMDD><NNN>`` / ``INV-<YYYYMM>-<NNN>`` from a
  per-day / per-month counter;
* the local fallback fills the three trailing digits at random.

``IdentifierResolver`` tries the first and silently falls back to the second.
Neither strategy checks the generated value against existing rows.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import date

from django.conf import settings
from django.db import transaction
from django.db.models import F

from common.utils import today as local_today
from core.models import IdentifierSequence

logger = logging.getLogger(__name__)

DEVICE_SERIAL_PREFIX = "RE"
INVOICE_NUMBER_PREFIX = "INV"
SEQUENCE_LIMIT = 999


class SequenceExhausted(Exception):
    pass


def local_device_serial(today: date | None = None, rng: random.Random | None = None) -> str:
    today = today or local_today()
    rng = rng or random
    return f"{DEVICE_SERIAL_PREFIX}{today:%y%m%d}{rng.randint(0, SEQUENCE_LIMIT):03d}"


def local_invoice_number(today: date | None = None, rng: random.Random | None = None) -> str:
    today = today or local_today()
    rng = rng or random
    return f"{INVOICE_NUMBER_PREFIX}-{today:%Y%m}-{rng.randint(0, SEQUENCE_LIMIT):03d}"


def next_sequence_value(key: str, period: str) -> int:
    with transaction.atomic():
        IdentifierSequence.objects.get_or_create(key=key, period=period)
        IdentifierSequence.objects.select_for_update().filter(key=key, period=period).update(
            last_value=F("last_value") + 1
        )
        value = IdentifierSequence.objects.filter(key=key, period=period).values_list("last_value", flat=True).get()
    if value > SEQUENCE_LIMIT:
        raise SequenceExhausted(f"Sequence {key}/{period} exceeded {SEQUENCE_LIMIT}.")
    return value


def sequence_device_serial(today: date | None = None) -> str:
    today = today or local_today()
    period = f"{today:%y%m%d}"
    return f"{DEVICE_SERIAL_PREFIX}{period}{next_sequence_value('device_serial', period):03d}"


def sequence_invoice_number(today: date | None = None) -> str:
    today = today or local_today()
    period = f"{today:%Y%m}"
    return f"{INVOICE_NUMBER_PREFIX}-{period}-{next_sequence_value('invoice_number', period):03d}"


class IdentifierResolver:
    """Remote-preferred, local-fallback generator."""

    def __init__(self, name: str, remote: Callable[[date], str], local: Callable[[date], str]) -> None:
        self.name = name
        self.remote = remote
        self.local = local

    def __call__(self, today: date | None = None) -> str:
        today = today or local_today()
        if settings.IDENTIFIER_STRATEGY == "sequence":
            try:
                # Savepoint so a failed remote call leaves an outer transaction usable.
                with transaction.atomic():
                    return self.remote(today)
            except Exception:
                logger.warning(
                    "identifier_remote_generation_failed",
                    exc_info=True,
                    extra={"entity": self.name, "strategy": "local"},
                )
        return self.local(today)


generate_device_serial = IdentifierResolver("device_serial", sequence_device_serial, local_device_serial)
generate_invoice_number = IdentifierResolver("invoice_number", sequence_invoice_number, local_invoice_number)
