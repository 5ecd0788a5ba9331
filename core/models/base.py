"""
Modelos base: timestamps automáticos y eliminación lógica.
"""
import logging

from django.db import models, transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


class BaseModel(models.Model):
    """Modelo base con ID numérico autoincremental y timestamps automáticos."""
    created_at = models.DateTimeField(auto_now_add=True, editable=False)
    updated_at = models.DateTimeField(auto_now=True, editable=False)

    class Meta:
        abstract = True
        ordering = ["-created_at"]


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet que marca registros como eliminados en lugar de borrarlos."""

    def delete(self):
        now_ts = timezone.now()
        return super().update(is_deleted=True, deleted_at=now_ts, updated_at=now_ts)

    def hard_delete(self):
        return super().delete()

    def alive(self):
        return self.filter(is_deleted=False)


class SoftDeleteManager(models.Manager):
    use_in_migrations = True

    def __init__(self, *args, include_deleted=False, **kwargs):
        self.include_deleted = include_deleted
        super().__init__(*args, **kwargs)

    def get_queryset(self):
        qs = SoftDeleteQuerySet(self.model, using=self._db)
        if not self.include_deleted:
            qs = qs.filter(is_deleted=False)
        return qs


class SoftDeleteModel(BaseModel):
    """
    Modelo base con soft delete.

    Las tiendas y servicios del catálogo se referencian desde citas históricas,
    por lo que nunca se eliminan físicamente: `objects` oculta los eliminados y
    `all_objects` los incluye.
    """
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()
    all_objects = SoftDeleteManager(include_deleted=True)

    class Meta(BaseModel.Meta):
        abstract = True
        base_manager_name = "all_objects"
        default_manager_name = "objects"

    def delete(self, using=None, keep_parents=False):
        if self.is_deleted:
            return
        with transaction.atomic():
            fresh = type(self).all_objects.select_for_update().filter(pk=self.pk).first()
            if fresh is None or fresh.is_deleted:
                logger.warning(
                    "Soft-delete sobre registro inexistente o ya eliminado: %s pk=%s",
                    type(self).__name__,
                    self.pk,
                )
                return
            fresh.is_deleted = True
            fresh.deleted_at = timezone.now()
            fresh.save(update_fields=["is_deleted", "deleted_at", "updated_at"])
        self.is_deleted = True
        self.deleted_at = fresh.deleted_at
