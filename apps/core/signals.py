# apps/core/signals.py

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Board, TimeLog


@receiver(post_save, sender=Board)
def create_default_lists(sender, instance, created, **kwargs):
    """
    Creates the default lists when a new board is created
    Only if the board has no lists yet
    """
    if created and not instance.lists.exists():
        instance.create_default_lists()


@receiver(pre_save, sender=TimeLog)
def fill_time_log_duration(sender, instance, **kwargs):
    """
    Fills duration_ms for entries saved closed without one
    Queryset updates skip this, so a stray entry closed by the ledger
    keeps a null duration
    """
    if instance.end_time and instance.start_time and instance.duration_ms is None:
        delta = instance.end_time - instance.start_time
        if delta.total_seconds() >= 0:
            instance.duration_ms = int(delta.total_seconds() * 1000)
