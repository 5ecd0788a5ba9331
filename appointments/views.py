"""
API delgada sobre el motor de citas.

Cada acción arma la solicitud tipada y delega en los servicios; los errores
de negocio se propagan como BusinessLogicError y los normaliza el handler
global de DRF.
"""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .models import Appointment
from .requests import TransitionAction, TransitionRequest
from .serializers import (
    AdjustPricingSerializer,
    AppointmentCancelSerializer,
    AppointmentRescheduleSerializer,
    AppointmentSerializer,
    AppointmentStatusLogSerializer,
    AssignRiderSerializer,
    AvailabilityQuerySerializer,
    BookingRequestSerializer,
)
from .services import AppointmentLifecycle, BookingEngine, SlotAvailabilityIndex


class AppointmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated]
    queryset = Appointment.objects.select_related("vendor_store", "service", "rider")

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(customer=user)

    def get_serializer_class(self):
        if self.action == "create":
            return BookingRequestSerializer
        return super().get_serializer_class()

    def _respond(self, appointment, status_code=status.HTTP_200_OK):
        return Response(AppointmentSerializer(appointment, context=self.get_serializer_context()).data, status=status_code)

    def _transition(self, action_name, **kwargs):
        appointment = self.get_object()
        transition = TransitionRequest(
            appointment_id=appointment.pk,
            action=action_name,
            actor=self.request.user,
            **kwargs,
        )
        return AppointmentLifecycle().apply(transition)

    def create(self, request, *args, **kwargs):
        """Reserva una cita."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = BookingEngine().book(serializer.to_request(customer=request.user))
        return self._respond(appointment, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], permission_classes=[IsAdminUser])
    def confirm(self, request, pk=None):
        return self._respond(self._transition(TransitionAction.CONFIRM))

    @action(detail=True, methods=["post"], permission_classes=[IsAdminUser])
    def start(self, request, pk=None):
        return self._respond(self._transition(TransitionAction.START))

    @action(detail=True, methods=["post"], permission_classes=[IsAdminUser])
    def complete(self, request, pk=None):
        return self._respond(self._transition(TransitionAction.COMPLETE))

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = AppointmentCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = self._transition(
            TransitionAction.CANCEL,
            reason=serializer.validated_data["reason"],
            details=serializer.validated_data["details"],
        )
        return self._respond(appointment)

    @action(detail=True, methods=["post"], url_path="no-show", permission_classes=[IsAdminUser])
    def no_show(self, request, pk=None):
        return self._respond(self._transition(TransitionAction.NO_SHOW))

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        serializer = AppointmentRescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self._transition(
            TransitionAction.RESCHEDULE,
            new_date=serializer.validated_data["new_date"],
            new_time=serializer.validated_data["new_time"],
        )
        return self._respond(result.successor, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="assign-rider", permission_classes=[IsAdminUser])
    def assign_rider(self, request, pk=None):
        appointment = self.get_object()
        serializer = AssignRiderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = AppointmentLifecycle().assign_rider(
            appointment.pk,
            serializer.validated_data["rider_id"],
            actor=request.user,
        )
        return self._respond(updated)

    @action(detail=True, methods=["post"], url_path="adjust-pricing", permission_classes=[IsAdminUser])
    def adjust_pricing(self, request, pk=None):
        appointment = self.get_object()
        serializer = AdjustPricingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated, breakdown = AppointmentLifecycle().adjust_pricing(
            appointment.pk,
            additional_charges=serializer.validated_data.get("additional_charges"),
            discount_amount=serializer.validated_data.get("discount_amount"),
            actor=request.user,
        )
        updated.discount_clamped = breakdown.discount_clamped
        return self._respond(updated)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        appointment = self.get_object()
        logs = appointment.status_logs.all()
        return Response(AppointmentStatusLogSerializer(logs, many=True).data)

    @action(detail=False, methods=["get"])
    def availability(self, request):
        """Horas de inicio libres para una tienda, servicio y fecha."""
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        slots = SlotAvailabilityIndex().available_slots(data["store_id"], data["service_id"], data["date"])
        return Response(
            {
                "date": data["date"].isoformat(),
                "slots": [slot.strftime("%H:%M") for slot in slots],
            }
        )
