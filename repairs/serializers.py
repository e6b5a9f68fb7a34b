from rest_framework import serializers

from repairs import services
from repairs.models import Booking, DeviceEntry, Warranty, WarrantyClaim


class DeviceEntrySerializer(serializers.ModelSerializer):
    next_status = serializers.SerializerMethodField()

    class Meta:
        model = DeviceEntry
        fields = [
            "id",
            "serial_number",
            "customer_name",
            "mobile_number",
            "village_name",
            "address",
            "device_type",
            "device_brand",
            "device_model",
            "winding_type",
            "motor_hp",
            "problem_description",
            "accessories_received",
            "estimated_cost",
            "advance_paid",
            "final_cost",
            "status",
            "next_status",
            "received_date",
            "expected_delivery",
            "delivered_date",
            "technician_name",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "received_date", "created_at", "updated_at"]

    def get_next_status(self, obj):
        return services.next_device_entry_status(obj)

    def create(self, validated_data):
        return services.create_device_entry(validated_data)

    def update(self, instance, validated_data):
        return services.update_device_entry(instance, validated_data)


class BookingRequestSerializer(serializers.ModelSerializer):
    """Fields a visitor may send from the public booking form."""

    class Meta:
        model = Booking
        fields = ["id", "customer_name", "phone", "email", "device_type", "brand", "issue_description", "status", "created_at"]
        read_only_fields = ["id", "status", "created_at"]

    def create(self, validated_data):
        return services.create_booking(validated_data)


class BookingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = [
            "id",
            "customer_name",
            "phone",
            "email",
            "device_type",
            "brand",
            "issue_description",
            "status",
            "priority",
            "estimated_cost",
            "actual_cost",
            "notes",
            "technician_name",
            "technician_phone",
            "scheduled_date",
            "completed_date",
            "warranty_until",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def create(self, validated_data):
        return services.create_booking(validated_data)

    def update(self, instance, validated_data):
        return services.update_booking(instance, validated_data)


class WarrantySerializer(serializers.ModelSerializer):
    start_date = serializers.DateField(required=False)
    warranty_days = serializers.IntegerField(required=False, min_value=0, max_value=3650)
    end_date = serializers.DateField(required=False)
    is_expired = serializers.SerializerMethodField()
    is_within_window = serializers.SerializerMethodField()

    class Meta:
        model = Warranty
        fields = [
            "id",
            "customer_name",
            "customer_phone",
            "device_type",
            "device_brand",
            "serial_number",
            "start_date",
            "warranty_days",
            "end_date",
            "service_description",
            "technician_name",
            "status",
            "claim_count",
            "is_expired",
            "is_within_window",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "claim_count", "created_at", "updated_at"]

    def get_is_expired(self, obj):
        return services.is_expired(obj)

    def get_is_within_window(self, obj):
        return services.is_within_window(obj)

    def create(self, validated_data):
        validated_data.pop("end_date", None)
        return services.create_warranty(validated_data)

    def update(self, instance, validated_data):
        return services.update_warranty(instance, validated_data)


class WarrantyClaimSerializer(serializers.ModelSerializer):
    class Meta:
        model = WarrantyClaim
        fields = ["id", "warranty", "claim_date", "issue_description", "status", "resolution", "created_at", "updated_at"]
        read_only_fields = ["id", "warranty", "claim_date", "created_at", "updated_at"]


class WarrantyClaimCreateSerializer(serializers.Serializer):
    issue_description = serializers.CharField()


class PublicDeviceEntrySerializer(DeviceEntrySerializer):
    """What the Track Repair page shows a visitor; no costs, address or notes."""

    class Meta(DeviceEntrySerializer.Meta):
        fields = [
            "id",
            "serial_number",
            "customer_name",
            "device_type",
            "device_brand",
            "problem_description",
            "status",
            "received_date",
            "expected_delivery",
            "delivered_date",
        ]


class PublicBookingSerializer(BookingSerializer):
    class Meta(BookingSerializer.Meta):
        fields = [
            "id",
            "customer_name",
            "device_type",
            "brand",
            "issue_description",
            "status",
            "scheduled_date",
            "completed_date",
            "warranty_until",
            "created_at",
        ]


class PublicWarrantySerializer(WarrantySerializer):
    class Meta(WarrantySerializer.Meta):
        fields = [
            "id",
            "customer_name",
            "device_type",
            "device_brand",
            "serial_number",
            "start_date",
            "end_date",
            "status",
            "is_expired",
            "is_within_window",
        ]
