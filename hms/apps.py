from django.apps import AppConfig
from django.conf import settings
from django.utils.module_loading import import_string


class HmsConfig(AppConfig):
    """Loads the clinic configuration and the event publisher once at start-up."""
    name = 'hms'
    verbose_name = 'Clinic management'
    default_auto_field = 'django.db.models.BigAutoField'

    clinic = None
    publisher = None

    def ready(self) -> None:
        from hms.config import load_clinic_config

        self.clinic = load_clinic_config(getattr(settings, 'CLINIC', {}), time_zone=settings.TIME_ZONE)
        self.publisher = import_string(settings.HMS_EVENT_PUBLISHER)()
