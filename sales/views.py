from django.db import transaction
from django.http import HttpResponse
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.audit import AuditedMutationMixin, create_audit_log_from_request
from common.identifiers import generate_invoice_number
from common.permissions import RoleCapabilityPermission
from repairs.serializers import BookingSerializer
from sales import services
from sales.models import Customer, Invoice
from sales.receipts import render_invoice
from sales.serializers import CustomerSerializer, DirectoryCustomerSerializer, InvoiceSerializer


class CustomerViewSet(AuditedMutationMixin, viewsets.ModelViewSet):
    queryset = Customer.objects.all()
    serializer_class = CustomerSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    audit_entity = "customer"
    permission_action_map = {
        "list": "customers.view",
        "retrieve": "customers.view",
        "by_phone": "customers.view",
        "directory": "customers.view",
        "bookings": "customers.view",
        "create": "customers.manage",
        "update": "customers.manage",
        "partial_update": "customers.manage",
        "destroy": "customers.manage",
    }

    def get_queryset(self):
        return services.search_customers(
            self.queryset.order_by("-created_at"),
            self.request.query_params.get("search"),
        )

    @action(detail=False, methods=["get"], url_path="by-phone")
    def by_phone(self, request):
        customer = services.customer_by_phone(request.query_params.get("phone", ""))
        return Response({"result": self.get_serializer(customer).data if customer else None})

    @action(detail=False, methods=["get"], pagination_class=None)
    def directory(self, request):
        source, rows = services.customer_directory(request.query_params.get("search"))
        if source == "customers":
            data = CustomerSerializer(rows, many=True).data
        else:
            data = DirectoryCustomerSerializer(rows, many=True).data
        return Response({"source": source, "count": len(data), "results": data})

    @action(detail=False, methods=["get"], pagination_class=None)
    def bookings(self, request):
        phone = (request.query_params.get("phone") or "").strip()
        if not phone:
            raise ValidationError({"phone": "phone is required."})
        return Response(BookingSerializer(services.customer_bookings(phone), many=True).data)


class InvoiceViewSet(AuditedMutationMixin, viewsets.ModelViewSet):
    queryset = Invoice.objects.all()
    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    audit_entity = "invoice"
    permission_action_map = {
        "list": "billing.view",
        "retrieve": "billing.view",
        "by_number": "billing.view",
        "next_number": "billing.view",
        "receipt": "billing.view",
        "create": "billing.manage",
        "update": "billing.manage",
        "partial_update": "billing.manage",
        "mark_paid": "billing.manage",
        "destroy": "billing.delete",
    }

    def get_queryset(self):
        payment_status = self.request.query_params.get("payment_status")
        if payment_status and payment_status not in Invoice.PaymentStatus.values:
            raise ValidationError(
                {"payment_status": f"Expected one of: {', '.join(Invoice.PaymentStatus.values)}."}
            )
        return services.search_invoices(
            self.queryset.order_by("-created_at"),
            payment_status=payment_status,
            search=self.request.query_params.get("search"),
        )

    @action(detail=False, methods=["get"], url_path="next-number")
    def next_number(self, request):
        return Response({"invoice_number": generate_invoice_number()})

    @action(detail=False, methods=["get"], url_path="by-number")
    def by_number(self, request):
        invoice = services.invoice_by_number(request.query_params.get("number", ""))
        return Response({"result": self.get_serializer(invoice).data if invoice else None})

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        invoice = self.get_object()
        before_snapshot = self.get_serializer(invoice).data
        with transaction.atomic():
            invoice = services.mark_invoice_paid(invoice)
            after_snapshot = self.get_serializer(invoice).data
            create_audit_log_from_request(
                request,
                action="invoice.mark_paid",
                entity="invoice",
                entity_id=invoice.id,
                before_snapshot=before_snapshot,
                after_snapshot=after_snapshot,
            )
        return Response(after_snapshot)

    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):
        invoice = self.get_object()
        response = HttpResponse(render_invoice(invoice), content_type="text/plain; charset=utf-8")
        response["Content-Disposition"] = f'inline; filename="{invoice.invoice_number}.txt"'
        return response
