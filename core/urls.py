from django.urls import path
from rest_framework.routers import DefaultRouter

from core.views import AuditLogViewSet, ContactViewSet, SettingsView

router = DefaultRouter()
router.register(r"contacts", ContactViewSet, basename="contact")
router.register(r"admin/audit-logs", AuditLogViewSet, basename="audit-log")

urlpatterns = router.urls + [
    path("settings/", SettingsView.as_view(), name="settings"),
]
