from django.apps import AppConfig


class EditCounterConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "editcounter"
    verbose_name = "Edit counter"
