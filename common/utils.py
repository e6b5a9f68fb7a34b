import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.utils import timezone

from core.models import Setting

logger = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")


def to_money(value):
    return Decimal(value or 0).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def today():
    return timezone.localdate()


def get_setting(key, default=None):
    value = Setting.objects.filter(key=key).values_list("value", flat=True).first()
    if value is None or str(value).strip() == "":
        return default
    return value


def get_int_setting(key, default):
    raw = get_setting(key)
    if raw is None:
        return default
    try:
        return int(Decimal(str(raw).strip()))
    except (InvalidOperation, ValueError):
        logger.warning("invalid_integer_setting key=%s value=%r", key, raw)
        return default


def shop_identity():
    return {
        "name": get_setting("business_name", settings.SHOP_NAME),
        "phone": get_setting("business_phone", settings.SHOP_PHONE),
    }
