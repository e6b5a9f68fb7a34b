"""Plain-text layout helpers for receipts, job cards and invoices."""

from datetime import date, datetime

from django.utils import timezone

WIDTH = 40
CURRENCY = "₹"


def rule(char="-"):
    return char * WIDTH


def centered(text):
    return str(text).center(WIDTH).rstrip()


def row(label, value):
    label = f"{label}:"
    value = "-" if value in (None, "") else str(value)
    gap = max(WIDTH - len(label) - len(value), 1)
    return f"{label}{' ' * gap}{value}"


def format_date(value):
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return f"{value.day}/{value.month}/{value.year}"
    return str(value)


def format_money(value):
    return f"{CURRENCY}{value}"


def header(shop, subtitle, phone=True):
    lines = [rule("="), centered(shop["name"]), centered(subtitle)]
    if phone and shop.get("phone"):
        lines.append(centered(f"Ph: {shop['phone']}"))
    lines.append(rule("="))
    return lines


def render(lines):
    return "\n".join(lines) + "\n"
