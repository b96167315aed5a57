# signals.py
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Page, Permission, Role
from .permission_engine import invalidate_matrix


@receiver([post_save, post_delete], sender=Role)
@receiver([post_save, post_delete], sender=Page)
@receiver([post_save, post_delete], sender=Permission)
def reset_permission_matrix(sender, **kwargs):
    invalidate_matrix()
