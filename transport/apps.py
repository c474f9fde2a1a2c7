from django.apps import AppConfig


class TransportConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "transport"
    verbose_name = "Transport documents"

    def ready(self):
        """
        Register the domain event handlers of the transport app.
        @register_handler only runs once the module is imported.
        """
        import transport.handlers  # noqa
