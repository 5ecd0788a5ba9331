import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone
from django.utils.module_loading import import_string

from notifications.models import NotificationLog
from notifications.services import NotificationService

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True, retry_kwargs={"max_retries": 3})
def send_notification_task(self, log_id):
    try:
        log = NotificationLog.objects.get(id=log_id)
    except NotificationLog.DoesNotExist:
        return "Log desaparecido"

    if log.status == NotificationLog.Status.SENT:
        return "Ya enviado"

    try:
        _dispatch_channel(log)
    except Exception as exc:
        metadata = log.metadata or {}
        attempts = metadata.get("attempts", 0) + 1
        metadata["attempts"] = attempts
        max_attempts = metadata.get("max_attempts") or NotificationService.MAX_DELIVERY_ATTEMPTS
        log.status = NotificationLog.Status.FAILED
        log.error_message = str(exc)
        if attempts >= max_attempts:
            metadata["dead_letter"] = True
        log.metadata = metadata
        log.save(update_fields=["status", "error_message", "metadata", "updated_at"])
        if metadata.get("dead_letter"):
            logger.error("Notificación %s descartada después de %s intentos", log.id, attempts)
            return "dead_letter"
        logger.exception("Error enviando notificación %s", log.id)
        raise

    log.status = NotificationLog.Status.SENT
    log.sent_at = timezone.now()
    log.error_message = ""
    log.save(update_fields=["status", "sent_at", "error_message", "updated_at"])
    return "Enviado"


def _dispatch_channel(log):
    payload = log.payload or {}
    subject = payload.get("subject", "")
    body = payload.get("body", "")

    if log.channel == NotificationLog.Channel.EMAIL:
        send_mail(
            subject or f"[{settings.PROJECT_NAME}] {log.event_code.replace('_', ' ').title()}",
            body,
            None,
            [log.recipient],
            fail_silently=False,
        )
    elif log.channel == NotificationLog.Channel.SMS:
        sender = import_string(settings.NOTIFICATIONS_SMS_SENDER)
        sender(log.recipient, body)
    else:
        raise ValueError(f"Canal desconocido {log.channel}")


@shared_task
def cleanup_old_notification_logs():
    """
    Elimina avisos enviados hace más de 90 días y fallidos de más de 180.
    Ejecutar diariamente vía Celery Beat.
    """
    sent_cutoff = timezone.now() - timedelta(days=90)
    sent_deleted, _ = NotificationLog.objects.filter(
        status=NotificationLog.Status.SENT,
        sent_at__lt=sent_cutoff,
    ).delete()

    failed_cutoff = timezone.now() - timedelta(days=180)
    failed_deleted, _ = NotificationLog.objects.filter(
        status=NotificationLog.Status.FAILED,
        created_at__lt=failed_cutoff,
    ).delete()

    logger.info("Limpieza de notificaciones: %s enviadas, %s fallidas", sent_deleted, failed_deleted)
    return {"sent_deleted": sent_deleted, "failed_deleted": failed_deleted}
