from django.apps import AppConfig


class BinRequestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'bin_requests'
