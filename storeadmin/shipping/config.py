"""
Carrier and waybill configuration for the Shipping module.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from django.conf import settings


PRODUCTION_BASE_URL = 'https://track.delhivery.com'
STAGING_BASE_URL = 'https://staging-express.delhivery.com'
PLACEHOLDER_TOKEN = 'your-delhivery-auth-token-here'


@dataclass(frozen=True)
class ShippingConfig:
    """Immutable snapshot of the ``SHIPPING`` settings."""

    api_token: str = ''
    environment: str = 'staging'
    min_stock: int = 100
    max_waybills_per_request: int = 10000
    reservation_ttl_minutes: int = 15
    default_weight_grams: int = 500
    default_dimensions_cm: Tuple[int, int, int] = (10, 10, 10)
    default_shipping_mode: str = 'Surface'
    delivery_lead_days: int = 7
    demo_mode_when_unconfigured: bool = False
    request_timeout_seconds: float = 30
    seller: Dict[str, str] = field(default_factory=dict)
    base_url_override: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        token = (self.api_token or '').strip()
        return bool(token) and token != PLACEHOLDER_TOKEN

    @property
    def base_url(self) -> str:
        if self.base_url_override:
            return self.base_url_override.rstrip('/')
        if self.environment == 'production':
            return PRODUCTION_BASE_URL
        return STAGING_BASE_URL

    @classmethod
    def from_settings(cls, overrides: Dict[str, Any] = None) -> 'ShippingConfig':
        """
        Build the configuration from ``settings.SHIPPING``.

        Args:
            overrides: Optional values replacing the settings entries

        Returns:
            ShippingConfig instance
        """
        raw = dict(getattr(settings, 'SHIPPING', {}))
        raw.update(overrides or {})

        dimensions = raw.get('DEFAULT_DIMENSIONS_CM', (10, 10, 10))
        return cls(
            api_token=raw.get('DELHIVERY_API_TOKEN', '') or '',
            environment=(raw.get('DELHIVERY_ENVIRONMENT') or 'staging').lower(),
            min_stock=int(raw.get('WAYBILL_MIN_STOCK', 100)),
            max_waybills_per_request=int(raw.get('WAYBILL_MAX_PER_REQUEST', 10000)),
            reservation_ttl_minutes=int(raw.get('WAYBILL_RESERVATION_TTL_MINUTES', 15)),
            default_weight_grams=int(raw.get('DEFAULT_WEIGHT_GRAMS', 500)),
            default_dimensions_cm=tuple(int(d) for d in dimensions),
            default_shipping_mode=raw.get('DEFAULT_SHIPPING_MODE', 'Surface'),
            delivery_lead_days=int(raw.get('DELIVERY_LEAD_DAYS', 7)),
            demo_mode_when_unconfigured=bool(raw.get('DEMO_MODE_WHEN_UNCONFIGURED', False)),
            request_timeout_seconds=float(raw.get('REQUEST_TIMEOUT_SECONDS', 30)),
            seller={
                'name': raw.get('SELLER_NAME', ''),
                'address': raw.get('SELLER_ADDRESS', ''),
                'gst': raw.get('SELLER_GST', ''),
            },
            base_url_override=raw.get('DELHIVERY_BASE_URL') or None,
        )
