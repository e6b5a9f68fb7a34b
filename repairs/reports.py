import csv
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce, TruncDate
from django.http import HttpResponse
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.permissions import RoleCapabilityPermission
from common.utils import to_money, today as local_today
from core.models import Contact
from repairs.models import Booking, DeviceEntry
from repairs.serializers import BookingSerializer
from repairs.services import active_warranties, expiring_warranties, todays_intake_count
from sales.models import Invoice


def booking_stats(days_back=30, now=None):
    since = (now or timezone.now()) - timedelta(days=days_back)
    bookings = Booking.objects.filter(created_at__gte=since)
    totals = bookings.aggregate(
        total_bookings=Count("id"),
        pending_bookings=Count("id", filter=Q(status=Booking.Status.PENDING)),
        completed_bookings=Count("id", filter=Q(status=Booking.Status.COMPLETED)),
        total_revenue=Coalesce(Sum("actual_cost"), Decimal("0.00")),
        costed_bookings=Count("id", filter=Q(actual_cost__gt=0)),
    )
    costed = totals.pop("costed_bookings")
    revenue = totals["total_revenue"]
    totals["total_revenue"] = to_money(revenue)
    totals["avg_repair_cost"] = to_money(revenue / costed) if costed else to_money(0)
    return totals


def popular_devices(limit=5):
    rows = (
        Booking.objects.values("device_type")
        .annotate(repair_count=Count("id"))
        .order_by("-repair_count", "device_type")[:limit]
    )
    return [{"device_type": row["device_type"], "repair_count": row["repair_count"]} for row in rows]


def bookings_by_date(days=7, now=None):
    since = (now or timezone.now()) - timedelta(days=days)
    rows = (
        Booking.objects.filter(created_at__gte=since)
        .annotate(day=TruncDate("created_at", tzinfo=timezone.get_current_timezone()))
        .values("day")
        .annotate(count=Count("id"))
        .order_by("day")
    )
    return [{"date": row["day"].isoformat(), "count": row["count"]} for row in rows]


def dashboard_summary(today=None):
    today = today or local_today()
    return {
        "today_device_entries": todays_intake_count(today),
        "pending_device_entries": DeviceEntry.objects.filter(
            status__in=[DeviceEntry.Status.RECEIVED, DeviceEntry.Status.IN_REPAIR]
        ).count(),
        "ready_device_entries": DeviceEntry.objects.filter(status=DeviceEntry.Status.READY).count(),
        "pending_bookings": Booking.objects.filter(status=Booking.Status.PENDING).count(),
        "unread_contacts": Contact.objects.filter(is_read=False).count(),
        "active_warranties": active_warranties(today).count(),
        "expiring_warranties": expiring_warranties(7, today).count(),
        "outstanding_invoices": Invoice.objects.exclude(payment_status=Invoice.PaymentStatus.PAID).count(),
    }


class BaseReportView(APIView):
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = {"get": "analytics.view"}
    cache_timeout = 60

    def _parse_int(self, request, name, default, minimum=1, maximum=365):
        raw = request.query_params.get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError({name: f"{name} must be an integer between {minimum} and {maximum}."})
        if not minimum <= value <= maximum:
            raise ValidationError({name: f"{name} must be between {minimum} and {maximum}."})
        return value

    def _csv_response(self, filename, rows):
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        if not rows:
            return response
        writer = csv.DictWriter(response, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
        return response

    def _cached(self, request, key, callback):
        cache_key = f"reports:{key}:{request.get_full_path()}"
        payload = cache.get(cache_key)
        if payload is None:
            payload = callback()
            cache.set(cache_key, payload, self.cache_timeout)
        return payload


class BookingStatsView(BaseReportView):
    def get(self, request):
        days_back = self._parse_int(request, "days_back", 30)
        payload = self._cached(request, "booking-stats", lambda: booking_stats(days_back))
        return Response({"days_back": days_back, **payload})


class PopularDevicesView(BaseReportView):
    def get(self, request):
        limit = self._parse_int(request, "limit", 5, maximum=100)
        rows = self._cached(request, "popular-devices", lambda: popular_devices(limit))
        if request.query_params.get("format") == "csv":
            return self._csv_response("popular_devices.csv", rows)
        return Response({"results": rows})


class BookingsByDateView(BaseReportView):
    def get(self, request):
        days = self._parse_int(request, "days", 7)
        rows = self._cached(request, "bookings-by-date", lambda: bookings_by_date(days))
        if request.query_params.get("format") == "csv":
            return self._csv_response("bookings_by_date.csv", rows)
        return Response({"days": days, "results": rows})


class RecentBookingsView(BaseReportView):
    def get(self, request):
        limit = self._parse_int(request, "limit", 5, maximum=100)
        bookings = Booking.objects.order_by("-created_at")[:limit]
        return Response({"results": BookingSerializer(bookings, many=True).data})


class DashboardSummaryView(BaseReportView):
    def get(self, request):
        return Response(self._cached(request, "dashboard-summary", dashboard_summary))
