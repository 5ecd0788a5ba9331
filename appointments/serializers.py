from decimal import Decimal

from rest_framework import serializers

from .models import Appointment, AppointmentStatusLog
from .requests import BookingRequest


class BookingRequestSerializer(serializers.Serializer):
    store_id = serializers.IntegerField(min_value=1)
    service_id = serializers.IntegerField(min_value=1)
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField()
    customer_name = serializers.CharField(max_length=255)
    customer_phone = serializers.CharField(max_length=32)
    customer_email = serializers.CharField(max_length=254, required=False, allow_blank=True, default="")
    customer_address = serializers.CharField(required=False, allow_blank=True, default="")
    customer_city = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    emergency_contact_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    emergency_contact_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    explicit_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, default=None)
    additional_charges = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=Decimal("0.00"))
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=Decimal("0.00"))
    customer_notes = serializers.CharField(required=False, allow_blank=True, default="")
    requirements = serializers.ListField(child=serializers.CharField(max_length=255), required=False, default=list)
    is_home_service = serializers.BooleanField(required=False, default=False)
    service_address = serializers.CharField(required=False, allow_blank=True, default="")
    sms_notifications = serializers.BooleanField(required=False, default=True)
    email_notifications = serializers.BooleanField(required=False, default=True)

    def to_request(self, customer=None) -> BookingRequest:
        return BookingRequest(customer=customer, **self.validated_data)


class AppointmentSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    rescheduled_from = serializers.SerializerMethodField()
    discount_clamped = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            "id",
            "reference",
            "status",
            "status_display",
            "vendor_store",
            "service",
            "rider",
            "customer_name",
            "customer_email",
            "customer_phone",
            "customer_address",
            "customer_city",
            "appointment_date",
            "appointment_time",
            "estimated_end_time",
            "duration_minutes",
            "service_price",
            "additional_charges",
            "discount_amount",
            "total_amount",
            "currency",
            "discount_clamped",
            "requirements",
            "customer_notes",
            "is_home_service",
            "service_address",
            "cancellation_reason",
            "cancellation_details",
            "confirmed_at",
            "started_at",
            "completed_at",
            "cancelled_at",
            "rescheduled_at",
            "no_show_at",
            "rescheduled_to",
            "rescheduled_from",
            "reschedule_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_rescheduled_from(self, obj):
        return Appointment.objects.filter(rescheduled_to=obj).values_list("pk", flat=True).first()

    def get_discount_clamped(self, obj):
        return getattr(obj, "discount_clamped", False)


class AppointmentStatusLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppointmentStatusLog
        fields = ["from_status", "to_status", "event", "reason", "related_appointment", "occurred_at"]
        read_only_fields = fields


class AppointmentCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
    details = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentRescheduleSerializer(serializers.Serializer):
    new_date = serializers.DateField()
    new_time = serializers.TimeField()


class AssignRiderSerializer(serializers.Serializer):
    rider_id = serializers.IntegerField(min_value=1)


class AdjustPricingSerializer(serializers.Serializer):
    additional_charges = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)

    def validate(self, data):
        if data.get("additional_charges") is None and data.get("discount_amount") is None:
            raise serializers.ValidationError("Indica cargos adicionales o descuento.")
        return data


class AvailabilityQuerySerializer(serializers.Serializer):
    store_id = serializers.IntegerField(min_value=1)
    service_id = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
