"""
Modelos abstractos compartidos por las apps del proyecto.
"""
from .base import BaseModel, SoftDeleteManager, SoftDeleteModel, SoftDeleteQuerySet

__all__ = [
    'BaseModel',
    'SoftDeleteQuerySet',
    'SoftDeleteManager',
    'SoftDeleteModel',
]
