import csv
import logging

from django.db import connections, transaction
from django.http import HttpResponse
from django.utils.dateparse import parse_datetime
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from common.audit import AuditedMutationMixin, create_audit_log_from_request
from common.permissions import PublicActionsMixin, RoleCapabilityPermission
from core.models import AuditLog, Contact, Setting
from core.serializers import (
    AuditLogSerializer,
    ContactSerializer,
    EmailOrUsernameTokenObtainPairSerializer,
    SettingsPatchSerializer,
)

logger = logging.getLogger(__name__)


class EmailOrUsernameTokenObtainPairView(TokenObtainPairView):
    serializer_class = EmailOrUsernameTokenObtainPairSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth"


class ContactViewSet(
    PublicActionsMixin,
    AuditedMutationMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Contact.objects.all()
    serializer_class = ContactSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    public_actions = ("create",)
    audit_entity = "contact"
    permission_action_map = {
        "list": "contacts.manage",
        "retrieve": "contacts.manage",
        "destroy": "contacts.manage",
        "mark_read": "contacts.manage",
        "mark_all_read": "contacts.manage",
    }

    def get_queryset(self):
        qs = self.queryset.order_by("-created_at")
        read_filter = self.request.query_params.get("filter")
        if read_filter == "read":
            qs = qs.filter(is_read=True)
        elif read_filter == "unread":
            qs = qs.filter(is_read=False)
        return qs

    def perform_create(self, serializer):
        contact = serializer.save()
        logger.info("contact_submitted", extra={"entity": "contact", "entity_id": str(contact.id)})

    @action(detail=True, methods=["post"], url_path="mark-read")
    def mark_read(self, request, pk=None):
        contact = self.get_object()
        if not contact.is_read:
            contact.is_read = True
            contact.save(update_fields=["is_read"])
        return Response(self.get_serializer(contact).data)

    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        # One independent update per row; a failure stops the loop and earlier rows stay read.
        unread_ids = list(Contact.objects.filter(is_read=False).order_by("created_at").values_list("id", flat=True))
        updated = 0
        for contact_id in unread_ids:
            updated += Contact.objects.filter(id=contact_id).update(is_read=True)
        create_audit_log_from_request(
            request,
            action="contact.mark_all_read",
            entity="contact",
            after_snapshot={"updated": updated},
        )
        return Response({"updated": updated})


class SettingsView(PublicActionsMixin, APIView):
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    public_actions = ("get",)
    permission_action_map = {"patch": "settings.manage"}

    def get(self, request):
        return Response(dict(Setting.objects.order_by("key").values_list("key", "value")))

    def patch(self, request):
        serializer = SettingsPatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        before_snapshot = dict(Setting.objects.values_list("key", "value"))
        with transaction.atomic():
            for key, value in serializer.validated_data.items():
                Setting.objects.update_or_create(key=key, defaults={"value": value})
            after_snapshot = dict(Setting.objects.order_by("key").values_list("key", "value"))
            create_audit_log_from_request(
                request,
                action="settings.update",
                entity="settings",
                before_snapshot=before_snapshot,
                after_snapshot=after_snapshot,
            )
        return Response(after_snapshot, status=status.HTTP_200_OK)


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("actor")
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = {
        "list": "admin.records.manage",
        "retrieve": "admin.records.manage",
        "export": "admin.records.manage",
    }

    def get_queryset(self):
        qs = self.queryset.order_by("-created_at")

        start_date = self.request.query_params.get("start_date")
        end_date = self.request.query_params.get("end_date")
        actor_id = self.request.query_params.get("actor_id")
        action_name = self.request.query_params.get("action")
        entity = self.request.query_params.get("entity")

        if start_date:
            dt = parse_datetime(start_date)
            if dt:
                qs = qs.filter(created_at__gte=dt)
        if end_date:
            dt = parse_datetime(end_date)
            if dt:
                qs = qs.filter(created_at__lte=dt)
        if actor_id:
            qs = qs.filter(actor_id=actor_id)
        if action_name:
            qs = qs.filter(action=action_name)
        if entity:
            qs = qs.filter(entity=entity)
        return qs

    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="audit-logs.csv"'

        writer = csv.writer(response)
        writer.writerow(["id", "created_at", "actor", "action", "entity", "entity_id", "request_id"])
        for log in self.get_queryset():
            writer.writerow(
                [
                    log.id,
                    log.created_at.isoformat(),
                    getattr(log.actor, "username", ""),
                    log.action,
                    log.entity,
                    log.entity_id,
                    log.request_id,
                ]
            )
        return response


@api_view(["GET"])
@permission_classes([AllowAny])
def healthz(request):
    return Response({"status": "ok", "request_id": getattr(request, "request_id", None)})


@api_view(["GET"])
@permission_classes([AllowAny])
def readyz(request):
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception:
        logger.exception("readiness_check_failed")
        return Response(
            {"status": "error", "request_id": getattr(request, "request_id", None)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return Response({"status": "ready", "request_id": getattr(request, "request_id", None)})
