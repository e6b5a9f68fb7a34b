import uuid

from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.audit import AuditedMutationMixin, create_audit_log_from_request
from common.identifiers import generate_device_serial
from common.permissions import PublicActionsMixin, RoleCapabilityPermission
from common.utils import today as local_today
from repairs import services
from repairs.lookup import KIND_BOOKING, KIND_DEVICE_ENTRY, KIND_WARRANTY, track_repairs
from repairs.models import Booking, DeviceEntry, Warranty, WarrantyClaim
from repairs.receipts import render_booking_job_card, render_device_receipt
from repairs.serializers import (
    BookingRequestSerializer,
    BookingSerializer,
    DeviceEntrySerializer,
    PublicBookingSerializer,
    PublicDeviceEntrySerializer,
    PublicWarrantySerializer,
    WarrantyClaimCreateSerializer,
    WarrantyClaimSerializer,
    WarrantySerializer,
)


def _choice_param(request, name, choices):
    value = request.query_params.get(name)
    if value and value not in choices:
        raise ValidationError({name: f"Expected one of: {', '.join(choices)}."})
    return value


def _text_response(body, filename):
    response = HttpResponse(body, content_type="text/plain; charset=utf-8")
    response["Content-Disposition"] = f'inline; filename="{filename}"'
    return response


class StatusActionMixin:
    """Run a lifecycle step and audit it under ``<entity>.<step>``."""

    @transaction.atomic
    def _run_step(self, step, handler):
        instance = self.get_object()
        before_snapshot = self.get_serializer(instance).data
        instance = handler(instance)
        after_snapshot = self.get_serializer(instance).data
        create_audit_log_from_request(
            self.request,
            action=f"{self.audit_entity}.{step}",
            entity=self.audit_entity,
            entity_id=instance.pk,
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
        )
        return Response(after_snapshot)


class DeviceEntryViewSet(StatusActionMixin, AuditedMutationMixin, viewsets.ModelViewSet):
    queryset = DeviceEntry.objects.all()
    serializer_class = DeviceEntrySerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    audit_entity = "device_entry"
    permission_action_map = {
        "list": "repairs.view",
        "retrieve": "repairs.view",
        "next_serial": "repairs.view",
        "by_serial": "repairs.view",
        "today_count": "repairs.view",
        "receipt": "repairs.view",
        "create": "repairs.manage",
        "update": "repairs.manage",
        "partial_update": "repairs.manage",
        "advance": "repairs.manage",
        "destroy": "repairs.delete",
    }

    def get_queryset(self):
        return services.search_device_entries(
            self.queryset.order_by("-created_at"),
            status=_choice_param(self.request, "status", DeviceEntry.Status.values),
            search=self.request.query_params.get("search"),
        )

    @transaction.atomic
    def perform_destroy(self, instance):
        self._audit(action="delete", instance=instance, before_snapshot=self.get_serializer(instance).data)
        services.delete_device_entry(instance)

    @action(detail=False, methods=["get"], url_path="next-serial")
    def next_serial(self, request):
        return Response({"serial_number": generate_device_serial()})

    @action(detail=False, methods=["get"], url_path="by-serial")
    def by_serial(self, request):
        entry = services.device_entry_by_serial(request.query_params.get("serial", ""))
        return Response({"result": self.get_serializer(entry).data if entry else None})

    @action(detail=False, methods=["get"], url_path="today-count")
    def today_count(self, request):
        today = local_today()
        return Response({"date": today.isoformat(), "count": services.todays_intake_count(today)})

    @action(detail=True, methods=["post"])
    def advance(self, request, pk=None):
        return self._run_step("advance", services.advance_device_entry)

    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):
        entry = self.get_object()
        return _text_response(render_device_receipt(entry), f"receipt-{entry.serial_number or entry.pk}.txt")


class BookingViewSet(PublicActionsMixin, StatusActionMixin, AuditedMutationMixin, viewsets.ModelViewSet):
    queryset = Booking.objects.all()
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    public_actions = ("create",)
    audit_entity = "booking"
    permission_action_map = {
        "list": "repairs.view",
        "retrieve": "repairs.view",
        "job_card": "repairs.view",
        "update": "repairs.manage",
        "partial_update": "repairs.manage",
        "advance": "repairs.manage",
        "cancel": "repairs.manage",
        "destroy": "repairs.delete",
    }

    def get_serializer_class(self):
        if self.action == "create":
            return BookingRequestSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        return services.search_bookings(
            self.queryset.order_by("-created_at"),
            status=_choice_param(self.request, "status", Booking.Status.values),
            priority=_choice_param(self.request, "priority", Booking.Priority.values),
            search=self.request.query_params.get("search"),
        )

    @action(detail=True, methods=["post"])
    def advance(self, request, pk=None):
        return self._run_step("advance", services.advance_booking)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        return self._run_step("cancel", services.cancel_booking)

    @action(detail=True, methods=["get"], url_path="job-card")
    def job_card(self, request, pk=None):
        booking = self.get_object()
        return _text_response(render_booking_job_card(booking), f"job-card-{str(booking.pk)[:8]}.txt")


class WarrantyViewSet(StatusActionMixin, AuditedMutationMixin, viewsets.ModelViewSet):
    queryset = Warranty.objects.all()
    serializer_class = WarrantySerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    audit_entity = "warranty"
    permission_action_map = {
        "list": "repairs.view",
        "retrieve": "repairs.view",
        "active": "repairs.view",
        "expiring": "repairs.view",
        "claims": "repairs.view",
        "create": "warranty.manage",
        "update": "warranty.manage",
        "partial_update": "warranty.manage",
        "create_claim": "warranty.manage",
        "void": "warranty.void",
        "destroy": "admin.records.manage",
    }

    def get_queryset(self):
        qs = self.queryset.order_by("-created_at")
        status_filter = _choice_param(self.request, "status", Warranty.Status.values)
        phone = self.request.query_params.get("phone")
        search = self.request.query_params.get("search")
        if status_filter:
            qs = qs.filter(status=status_filter)
        if phone:
            qs = qs.filter(customer_phone=phone.strip())
        if search:
            search = search.strip()
            qs = qs.filter(
                Q(customer_name__icontains=search)
                | Q(customer_phone__icontains=search)
                | Q(serial_number__icontains=search)
            )
        return qs

    @action(detail=False, methods=["get"], pagination_class=None)
    def active(self, request):
        return Response(self.get_serializer(services.active_warranties(), many=True).data)

    @action(detail=False, methods=["get"], pagination_class=None)
    def expiring(self, request):
        raw_days = request.query_params.get("days", "7")
        try:
            days = int(raw_days)
        except (TypeError, ValueError):
            raise ValidationError({"days": "days must be an integer."})
        if not 0 <= days <= 365:
            raise ValidationError({"days": "days must be between 0 and 365."})
        return Response(self.get_serializer(services.expiring_warranties(days), many=True).data)

    @action(detail=True, methods=["post"])
    def void(self, request, pk=None):
        return self._run_step("void", services.void_warranty)

    @action(detail=True, methods=["get"], pagination_class=None)
    def claims(self, request, pk=None):
        warranty = self.get_object()
        return Response(WarrantyClaimSerializer(warranty.claims.order_by("-created_at"), many=True).data)

    @claims.mapping.post
    def create_claim(self, request, pk=None):
        warranty = self.get_object()
        serializer = WarrantyClaimCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            claim = services.record_warranty_claim(warranty, serializer.validated_data["issue_description"])
            data = WarrantyClaimSerializer(claim).data
            create_audit_log_from_request(
                request,
                action="warranty.claim",
                entity="warranty_claim",
                entity_id=claim.pk,
                after_snapshot=data,
            )
        return Response(data, status=status.HTTP_201_CREATED)


class WarrantyClaimViewSet(
    AuditedMutationMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = WarrantyClaim.objects.select_related("warranty")
    serializer_class = WarrantyClaimSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    audit_entity = "warranty_claim"
    permission_action_map = {
        "list": "repairs.view",
        "retrieve": "repairs.view",
        "update": "warranty.manage",
        "partial_update": "warranty.manage",
    }

    def get_queryset(self):
        qs = self.queryset.order_by("-created_at")
        warranty_id = self.request.query_params.get("warranty")
        status_filter = _choice_param(self.request, "status", WarrantyClaim.Status.values)
        if warranty_id:
            try:
                uuid.UUID(warranty_id)
            except ValueError:
                raise ValidationError({"warranty": "Must be a valid UUID."})
            qs = qs.filter(warranty_id=warranty_id)
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs


TRACK_SERIALIZERS = {
    KIND_DEVICE_ENTRY: DeviceEntrySerializer,
    KIND_BOOKING: BookingSerializer,
    KIND_WARRANTY: WarrantySerializer,
}
PUBLIC_TRACK_SERIALIZERS = {
    KIND_DEVICE_ENTRY: PublicDeviceEntrySerializer,
    KIND_BOOKING: PublicBookingSerializer,
    KIND_WARRANTY: PublicWarrantySerializer,
}


class TrackRepairView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        outcome = track_repairs(request.query_params.get("mode"), request.query_params.get("value"))
        serializer_classes = TRACK_SERIALIZERS if request.user.is_authenticated else PUBLIC_TRACK_SERIALIZERS
        results = []
        for match in outcome["results"]:
            serializer_class = serializer_classes[match["kind"]]
            results.append({**match, "record": serializer_class(match["record"]).data})
        return Response(
            {
                "mode": outcome["mode"],
                "total_results": len(results),
                "results": results,
                "failed_sources": outcome["failed_sources"],
            }
        )
