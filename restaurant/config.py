"""
Tax and tip configuration.

Every component that needs the tax rate or the tip presets asks a
SettingsProvider instead of reading the settings row itself, so there is
exactly one fallback when the restaurant has not saved its settings yet.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_TIP_PERCENTAGES = [15, 18, 20]


def default_tax_rate() -> Decimal:
    return Decimal(str(settings.BISTRO_DEFAULT_TAX_RATE))


def default_tip_percentages() -> List[int]:
    return list(DEFAULT_TIP_PERCENTAGES)


class SettingsProvider:
    """Read-side access to the RestaurantSettings singleton."""

    def restaurant_settings(self):
        # Imported here: models.py uses the defaults above
        from .models import RestaurantSettings

        return RestaurantSettings.objects.filter(pk=RestaurantSettings.SINGLETON_PK).first()

    @property
    def tax_rate(self) -> Decimal:
        current = self.restaurant_settings()
        if current is None or current.tax_rate is None:
            logger.debug("No restaurant settings saved, using default tax rate")
            return default_tax_rate()
        return current.tax_rate

    @property
    def tips_enabled(self) -> bool:
        current = self.restaurant_settings()
        return True if current is None else current.enable_tips

    @property
    def tip_percentages(self) -> List[int]:
        current = self.restaurant_settings()
        if current is None or not current.default_tip_percentages:
            return default_tip_percentages()
        return list(current.default_tip_percentages)


class FixedSettingsProvider(SettingsProvider):
    """Provider pinned to explicit values, for scripts and tests."""

    def __init__(self, tax_rate: Decimal, tip_percentages: Optional[List[int]] = None):
        self._tax_rate = Decimal(str(tax_rate))
        self._tip_percentages = tip_percentages or default_tip_percentages()

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    @property
    def tips_enabled(self) -> bool:
        return True

    @property
    def tip_percentages(self) -> List[int]:
        return list(self._tip_percentages)
