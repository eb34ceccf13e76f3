from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .services.achievements import initialize_achievements


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_achievements(sender, instance, created: bool, **kwargs):
    if created:
        initialize_achievements(instance)
