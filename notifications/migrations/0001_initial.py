import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("appointments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("event_code", models.SlugField(max_length=64)),
                ("channel", models.CharField(choices=[("EMAIL", "Email"), ("SMS", "SMS")], max_length=10)),
                ("recipient", models.CharField(max_length=254)),
                (
                    "recipient_role",
                    models.CharField(
                        choices=[("CUSTOMER", "Cliente"), ("VENDOR", "Tienda"), ("RIDER", "Rider")],
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("QUEUED", "Encolada"), ("SENT", "Enviada"), ("FAILED", "Fallida")],
                        default="QUEUED",
                        max_length=10,
                    ),
                ),
                ("error_message", models.TextField(blank=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "appointment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notification_logs",
                        to="appointments.appointment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Registro de Notificación",
                "verbose_name_plural": "Registros de Notificación",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["event_code", "channel"], name="notif_event_channel_idx"),
                    models.Index(fields=["appointment", "created_at"], name="notif_appt_created_idx"),
                    models.Index(fields=["status", "created_at"], name="notif_status_created_idx"),
                ],
            },
        ),
    ]
