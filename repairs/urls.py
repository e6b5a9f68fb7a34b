from django.urls import path
from rest_framework.routers import DefaultRouter

from repairs.reports import (
    BookingsByDateView,
    BookingStatsView,
    DashboardSummaryView,
    PopularDevicesView,
    RecentBookingsView,
)
from repairs.views import (
    BookingViewSet,
    DeviceEntryViewSet,
    TrackRepairView,
    WarrantyClaimViewSet,
    WarrantyViewSet,
)

router = DefaultRouter()
router.register(r"device-entries", DeviceEntryViewSet, basename="device-entry")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"warranties", WarrantyViewSet, basename="warranty")
router.register(r"warranty-claims", WarrantyClaimViewSet, basename="warranty-claim")

urlpatterns = router.urls + [
    path("track/", TrackRepairView.as_view(), name="track-repair"),
    path("analytics/booking-stats/", BookingStatsView.as_view(), name="analytics-booking-stats"),
    path("analytics/popular-devices/", PopularDevicesView.as_view(), name="analytics-popular-devices"),
    path("analytics/bookings-by-date/", BookingsByDateView.as_view(), name="analytics-bookings-by-date"),
    path("analytics/recent-bookings/", RecentBookingsView.as_view(), name="analytics-recent-bookings"),
    path("dashboard/summary/", DashboardSummaryView.as_view(), name="dashboard-summary"),
]
