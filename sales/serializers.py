from rest_framework import serializers

from sales import services
from sales.models import Customer, Invoice


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "address",
            "total_repairs",
            "total_spent",
            "is_vip",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class DirectoryCustomerSerializer(serializers.Serializer):
    """Read-only shape shared by stored and booking-derived customers."""

    id = serializers.UUIDField(allow_null=True)
    name = serializers.CharField()
    email = serializers.CharField(allow_null=True)
    phone = serializers.CharField()
    total_repairs = serializers.IntegerField()
    total_spent = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_vip = serializers.BooleanField()


class InvoiceItemSerializer(serializers.Serializer):
    description = serializers.CharField(allow_blank=True)
    qty = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, required=False)
    invoice_number = serializers.CharField(required=False, max_length=32)
    invoice_date = serializers.DateField(required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    tax_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer_name",
            "customer_phone",
            "customer_address",
            "items",
            "subtotal",
            "discount",
            "tax_percent",
            "tax_amount",
            "total",
            "amount_paid",
            "balance_due",
            "payment_method",
            "payment_status",
            "payment_date",
            "invoice_date",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "subtotal", "tax_amount", "total", "payment_status", "created_at", "updated_at"]

    def create(self, validated_data):
        return services.create_invoice(validated_data)

    def update(self, instance, validated_data):
        return services.update_invoice(instance, validated_data)
