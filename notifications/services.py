import logging

from django.template import Context, Template, TemplateSyntaxError

from notifications.models import NotificationLog

logger = logging.getLogger(__name__)


class NotificationRenderer:
    """Plantillas de aviso por evento del ciclo de vida de la cita."""

    MESSAGES = {
        "booked": (
            "Cita {{ reference }} registrada",
            "Hola {{ customer_name }}, tu cita de {{ service_name }} en {{ store_name }} "
            "quedó registrada para el {{ date }} a las {{ time }} ({{ status_display }}).",
        ),
        "confirmed": (
            "Cita {{ reference }} confirmada",
            "Tu cita de {{ service_name }} en {{ store_name }} del {{ date }} a las {{ time }} está confirmada.",
        ),
        "started": (
            "Cita {{ reference }} en curso",
            "Tu servicio de {{ service_name }} ha comenzado.",
        ),
        "completed": (
            "Cita {{ reference }} completada",
            "Gracias por visitar {{ store_name }}. Total: {{ currency }} {{ total }}.",
        ),
        "cancelled": (
            "Cita {{ reference }} cancelada",
            "La cita del {{ date }} a las {{ time }} fue cancelada. Motivo: {{ cancellation_reason }}.",
        ),
        "no_show": (
            "Cita {{ reference }} sin asistencia",
            "La cita del {{ date }} a las {{ time }} se registró como no asistida.",
        ),
        "rescheduled": (
            "Cita reprogramada: {{ reference }}",
            "Tu cita {% if previous_reference %}{{ previous_reference }} {% endif %}se movió al "
            "{{ date }} a las {{ time }}. Nueva referencia: {{ reference }}.",
        ),
        "rider_assigned": (
            "Rider asignado a {{ reference }}",
            "{{ rider_name }} atenderá la cita del {{ date }} a las {{ time }}.",
        ),
    }

    @classmethod
    def render(cls, event_code, context):
        try:
            subject_template, body_template = cls.MESSAGES[event_code]
        except KeyError as exc:
            raise ValueError(f"Evento sin plantilla: {event_code}") from exc

        ctx = Context(context or {})
        try:
            subject = Template(subject_template).render(ctx).strip()
            body = Template(body_template).render(ctx).strip()
        except TemplateSyntaxError as exc:
            logger.error("Error de sintaxis en plantilla %s: %s", event_code, exc)
            raise ValueError(f"Plantilla inválida: {exc}") from exc
        return subject, body


class NotificationService:
    """
    Genera y encola los avisos de una transición ya confirmada en base de datos.

    Nada de lo que ocurra aquí puede afectar a la cita: los errores se registran
    y se devuelven listas vacías.
    """

    MAX_DELIVERY_ATTEMPTS = 3
    VENDOR_EVENTS = {"booked", "cancelled", "no_show", "rescheduled"}
    RIDER_EVENTS = {"rider_assigned", "cancelled", "rescheduled", "no_show"}

    @staticmethod
    def build_context(appointment):
        predecessor = getattr(appointment, "rescheduled_from", None) if appointment.reschedule_count else None
        return {
            "reference": appointment.reference,
            "previous_reference": getattr(predecessor, "reference", ""),
            "customer_name": appointment.customer_name,
            "store_name": appointment.vendor_store.name,
            "service_name": appointment.service.name,
            "date": appointment.appointment_date.isoformat(),
            "time": appointment.appointment_time.strftime("%H:%M"),
            "status_display": appointment.get_status_display(),
            "cancellation_reason": appointment.cancellation_reason,
            "currency": appointment.currency,
            "total": str(appointment.total_amount),
            "rider_name": getattr(appointment.rider, "name", ""),
        }

    @classmethod
    def recipients_for(cls, appointment, event_code):
        Role = NotificationLog.RecipientRole
        Channel = NotificationLog.Channel
        recipients = []
        if appointment.email_notifications and appointment.customer_email:
            recipients.append((Role.CUSTOMER, Channel.EMAIL, appointment.customer_email))
        if appointment.sms_notifications and appointment.customer_phone:
            recipients.append((Role.CUSTOMER, Channel.SMS, appointment.customer_phone))
        store = appointment.vendor_store
        if event_code in cls.VENDOR_EVENTS and store.contact_email:
            recipients.append((Role.VENDOR, Channel.EMAIL, store.contact_email))
        rider = appointment.rider
        if event_code in cls.RIDER_EVENTS and rider is not None and rider.phone:
            recipients.append((Role.RIDER, Channel.SMS, rider.phone))
        return recipients

    @classmethod
    def notify_transition(cls, appointment, event_code):
        """
        Crea un NotificationLog por destinatario y encola su envío.

        Acepta la cita o su id; se recarga para leer el estado confirmado.
        """
        from appointments.models import Appointment

        appointment_id = getattr(appointment, "pk", appointment)
        try:
            appointment = (
                Appointment.objects.select_related("vendor_store", "service", "rider")
                .get(pk=appointment_id)
            )
            subject, body = NotificationRenderer.render(event_code, cls.build_context(appointment))
            logs = []
            for role, channel, recipient in cls.recipients_for(appointment, event_code):
                log = NotificationLog.objects.create(
                    appointment=appointment,
                    event_code=event_code,
                    channel=channel,
                    recipient=recipient,
                    recipient_role=role,
                    payload={
                        "appointment_id": appointment.pk,
                        "transition": event_code,
                        "recipient": recipient,
                        "subject": subject,
                        "body": body,
                    },
                    metadata={"max_attempts": cls.MAX_DELIVERY_ATTEMPTS},
                )
                cls._enqueue(log)
                logs.append(log)
        except Exception:
            logger.exception("No se pudieron generar avisos cita=%s evento=%s", appointment_id, event_code)
            return []
        return logs

    @staticmethod
    def _enqueue(log):
        from notifications.tasks import send_notification_task

        try:
            send_notification_task.delay(log.id)
        except Exception as exc:
            logger.exception("No se pudo encolar la notificación %s", log.id)
            log.status = NotificationLog.Status.FAILED
            log.error_message = str(exc)
            log.save(update_fields=["status", "error_message", "updated_at"])
