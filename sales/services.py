import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import Q
from rest_framework.exceptions import ValidationError

from common.identifiers import generate_invoice_number
from common.utils import to_money, today as local_today
from repairs.models import Booking
from sales.models import Customer, Invoice

logger = logging.getLogger(__name__)

INVOICE_REQUIRED_FIELDS = ("customer_name", "customer_phone")
TOTALS_INPUTS = ("items", "discount", "tax_percent")


# Invoice computation


def line_amount(qty, rate):
    return to_money(Decimal(str(qty or 0)) * Decimal(str(rate or 0)))


def normalize_items(items):
    """Drop rows without a description and recompute every ``amount``."""
    normalized = []
    for item in items or []:
        description = str(item.get("description") or "").strip()
        if not description:
            continue
        qty = Decimal(str(item.get("qty") or 0))
        rate = to_money(Decimal(str(item.get("rate") or 0)))
        normalized.append(
            {
                "description": description,
                "qty": str(qty),
                "rate": str(rate),
                "amount": str(line_amount(qty, rate)),
            }
        )
    return normalized


def compute_invoice_totals(items, discount=0, tax_percent=0):
    """Derive subtotal, tax and total; tax applies to the discounted subtotal."""
    subtotal = to_money(sum((line_amount(item.get("qty"), item.get("rate")) for item in items), Decimal("0")))
    taxable = subtotal - to_money(discount)
    tax_amount = to_money(taxable * Decimal(str(tax_percent or 0)) / Decimal("100"))
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "total": to_money(taxable + tax_amount),
    }


def derive_payment_status(amount_paid, total):
    amount_paid = Decimal(str(amount_paid or 0))
    total = Decimal(str(total or 0))
    if amount_paid <= 0:
        return Invoice.PaymentStatus.UNPAID
    if amount_paid >= total:
        return Invoice.PaymentStatus.PAID
    return Invoice.PaymentStatus.PARTIAL


def _require(data, fields):
    missing = {field: ["This field is required."] for field in fields if not str(data.get(field) or "").strip()}
    if missing:
        raise ValidationError(missing)


def create_invoice(data, today=None):
    _require(data, INVOICE_REQUIRED_FIELDS)
    today = today or local_today()

    values = dict(data)
    values["items"] = normalize_items(values.get("items"))
    values.setdefault("discount", Decimal("0"))
    values.setdefault("tax_percent", Decimal("0"))
    values.setdefault("amount_paid", Decimal("0"))
    values.update(compute_invoice_totals(values["items"], values["discount"], values["tax_percent"]))
    values["payment_status"] = derive_payment_status(values["amount_paid"], values["total"])
    values["invoice_number"] = values.get("invoice_number") or generate_invoice_number(today)
    values["invoice_date"] = values.get("invoice_date") or today

    invoice = Invoice.objects.create(**values)
    logger.info(
        "invoice_created",
        extra={"entity": "invoices", "entity_id": str(invoice.id), "status": invoice.payment_status},
    )
    return invoice


def update_invoice(invoice, patch):
    _require(patch, [field for field in INVOICE_REQUIRED_FIELDS if field in patch])
    patch = dict(patch)
    if "items" in patch:
        patch["items"] = normalize_items(patch["items"])
    for field, value in patch.items():
        setattr(invoice, field, value)

    if any(field in patch for field in TOTALS_INPUTS):
        for field, value in compute_invoice_totals(invoice.items, invoice.discount, invoice.tax_percent).items():
            setattr(invoice, field, value)

    previous_status = invoice.payment_status
    invoice.payment_status = derive_payment_status(invoice.amount_paid, invoice.total)
    invoice.save()
    if previous_status != invoice.payment_status:
        logger.info(
            "invoice_payment_status_changed",
            extra={"entity": "invoices", "entity_id": str(invoice.id), "status": invoice.payment_status},
        )
    return invoice


def mark_invoice_paid(invoice, today=None):
    invoice.amount_paid = invoice.total
    invoice.payment_status = derive_payment_status(invoice.amount_paid, invoice.total)
    if invoice.payment_status == Invoice.PaymentStatus.PAID:
        invoice.payment_date = today or local_today()
    invoice.save(update_fields=["amount_paid", "payment_status", "payment_date", "updated_at"])
    logger.info(
        "invoice_marked_paid",
        extra={"entity": "invoices", "entity_id": str(invoice.id), "status": invoice.payment_status},
    )
    return invoice


def invoice_by_number(invoice_number):
    if not invoice_number:
        return None
    return Invoice.objects.filter(invoice_number=invoice_number.strip()).order_by("-created_at").first()


def search_invoices(queryset, *, payment_status=None, search=None):
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    if search:
        search = search.strip()
        queryset = queryset.filter(
            Q(invoice_number__icontains=search) | Q(customer_name__icontains=search) | Q(customer_phone__icontains=search)
        )
    return queryset


# Customers


def is_vip(total_repairs, total_spent):
    return total_repairs >= settings.VIP_MIN_REPAIRS or Decimal(str(total_spent or 0)) >= settings.VIP_MIN_SPEND


def customer_by_phone(phone):
    if not phone:
        return None
    return Customer.objects.filter(phone=phone.strip()).order_by("-created_at").first()


def search_customers(queryset, search=None):
    if search:
        search = search.strip()
        queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search))
    return queryset


def customers_from_bookings():
    """Synthesize customer rows from bookings grouped by phone; nothing is persisted."""
    grouped = {}
    for booking in Booking.objects.order_by("-created_at").only("customer_name", "phone", "email", "actual_cost"):
        row = grouped.get(booking.phone)
        if row is None:
            row = grouped[booking.phone] = {
                "id": None,
                "name": booking.customer_name,
                "phone": booking.phone,
                "email": booking.email,
                "total_repairs": 0,
                "total_spent": Decimal("0.00"),
            }
        row["total_repairs"] += 1
        row["total_spent"] += booking.actual_cost or Decimal("0")

    rows = []
    for row in grouped.values():
        row["total_spent"] = to_money(row["total_spent"])
        row["is_vip"] = is_vip(row["total_repairs"], row["total_spent"])
        rows.append(row)
    return rows


def _row_matches(row, search):
    search = search.strip().lower()
    return (
        search in (row["name"] or "").lower()
        or search in (row["phone"] or "")
        or search in (row["email"] or "").lower()
    )


def customer_directory(search=None):
    """Stored customers when any exist, otherwise the booking-derived fallback.

    Returns ``(source, rows)`` where ``source`` is ``"customers"`` with a
    queryset or ``"bookings"`` with a list of dicts.
    """
    if Customer.objects.exists():
        return "customers", search_customers(Customer.objects.order_by("-created_at"), search)
    rows = customers_from_bookings()
    if search:
        rows = [row for row in rows if _row_matches(row, search)]
    return "bookings", rows


def customer_bookings(phone):
    return Booking.objects.filter(phone=phone).order_by("-created_at")
