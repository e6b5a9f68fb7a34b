from django.conf import settings
from django.db.models import Q

from catalog.models import Product, ServiceRate
from common.utils import get_int_setting


def low_stock_threshold():
    return get_int_setting("low_stock_threshold", settings.LOW_STOCK_THRESHOLD)


def low_stock_products(threshold=None):
    if threshold is None:
        threshold = low_stock_threshold()
    return Product.objects.filter(is_active=True, stock__lte=threshold).order_by("stock", "name")


def search_products(queryset, *, category=None, featured=None, search=None):
    if category:
        queryset = queryset.filter(category=category)
    if featured is not None:
        queryset = queryset.filter(is_featured=featured)
    if search:
        search = search.strip()
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(brand__icontains=search) | Q(description__icontains=search)
        )
    return queryset


def active_service_rates(device_type=None):
    rates = ServiceRate.objects.filter(is_active=True)
    if device_type:
        rates = rates.filter(device_type__iexact=device_type.strip())
    return rates.order_by("device_type", "service_name")
