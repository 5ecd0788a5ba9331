"""
Core Infra - Logging Filters.

Sanitización de datos de contacto de clientes antes de emitir logs.
"""
import logging
import re


class SanitizePIIFilter(logging.Filter):
    """
    Filtro de logging que remueve información personal identificable (PII).

    Las citas guardan email y teléfono del cliente y del contacto de emergencia;
    ninguno de esos valores debe terminar en archivos de log.
    """

    PATTERNS = [
        # Números de tarjeta (primero, es el patrón más específico)
        (
            re.compile(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b'),
            '****-****-****-****'
        ),
        # Emails
        (
            re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'),
            '***EMAIL***'
        ),
        # Teléfonos en formato internacional
        (
            re.compile(r'\+\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,9}'),
            '***PHONE***'
        ),
        # Móviles locales (09XX XXX XXXX)
        (
            re.compile(r'\b0\d{3}[-\s]?\d{3}[-\s]?\d{4}\b'),
            '***PHONE***'
        ),
    ]

    def sanitize(self, value: str) -> str:
        for pattern, replacement in self.PATTERNS:
            value = pattern.sub(replacement, value)
        return value

    def _sanitize_arg(self, value):
        return self.sanitize(value) if isinstance(value, str) else value

    def filter(self, record):
        """Sanitiza PII del mensaje de log y de sus argumentos."""
        if isinstance(record.msg, str):
            record.msg = self.sanitize(record.msg)

        if isinstance(record.args, dict):
            record.args = {key: self._sanitize_arg(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._sanitize_arg(arg) for arg in record.args)

        return True
