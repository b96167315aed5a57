# apps.py
from django.apps import AppConfig


class ConsultancyAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'consultancy_app'
    verbose_name = 'Consultancy Back Office'

    def ready(self):
        from . import signals  # noqa: F401
