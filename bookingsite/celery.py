import os

from celery import Celery

# Establece el módulo de configuración de Django para el programa 'celery'.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bookingsite.settings.main")

app = Celery("bookingsite")

# namespace='CELERY': todas las claves de configuración de Celery llevan prefijo `CELERY_`.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Carga automáticamente los módulos tasks.py de las apps registradas.
app.autodiscover_tasks()
