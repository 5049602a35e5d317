from django.apps import AppConfig


class ShippingAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shipping'
    verbose_name = 'Shipping'
