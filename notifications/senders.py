"""
Remitentes de SMS.

El proveedor real se configura con NOTIFICATIONS_SMS_SENDER (ruta importable a
una función `sender(phone, body)`); por defecto solo se registra el envío.
"""
import logging

logger = logging.getLogger(__name__)


def log_sms(phone, body):
    logger.info("SMS a %s: %s", phone, body)
