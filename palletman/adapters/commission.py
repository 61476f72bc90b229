"""
Palletman Commission Adapter — commission rate lookup.

This adapter loads the configured CommissionRateTable from settings.

Usage:
    from palletman.adapters import get_commission_table

    table = get_commission_table()
    if table is not None:
        rate = table.rate_for(Decimal("62"))  # Decimal("17")

Settings:
    PALLETMAN = {
        "COMMISSION_TABLE": "palletman.adapters.commission.TieredCommissionTable",
        "COMMISSION_TIERS": [(0, 50, 15), (50, 75, 17), (75, None, 20)],
    }

If COMMISSION_TABLE is not configured, get_commission_table() returns None.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from palletman.conf import palletman_settings
from palletman.protocols.commission import CommissionRateTable

logger = logging.getLogger(__name__)


class TieredCommissionTable:
    """
    Weight-tiered commission rates.

    Tiers are (min_kg, max_kg, rate) with min inclusive and max exclusive;
    max None means open-ended. Weights below every tier get the first rate.
    """

    def __init__(self, tiers=None):
        raw = tiers if tiers is not None else palletman_settings.COMMISSION_TIERS
        if not raw:
            raise ImproperlyConfigured("PALLETMAN['COMMISSION_TIERS'] must not be empty")
        self.tiers = [
            (
                Decimal(str(low)),
                None if high is None else Decimal(str(high)),
                Decimal(str(rate)),
            )
            for low, high, rate in raw
        ]

    def rate_for(self, total_weight: Decimal) -> Decimal:
        for low, high, rate in self.tiers:
            if total_weight >= low and (high is None or total_weight < high):
                return rate
        return self.tiers[0][2]


# Cached table instance
_lock = threading.Lock()
_commission_table: CommissionRateTable | None = None


def get_commission_table() -> CommissionRateTable | None:
    """
    Return the configured commission table, or None when not configured.

    Raises:
        ImproperlyConfigured: If the import fails
    """
    global _commission_table

    table_path = palletman_settings.COMMISSION_TABLE
    if not table_path:
        return None

    if _commission_table is None:
        with _lock:
            if _commission_table is None:  # double-checked
                try:
                    table_class = import_string(table_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import commission table '{table_path}': {e}"
                    ) from e
                _commission_table = table_class()
                logger.debug("Loaded commission table: %s", table_path)

    return _commission_table


def reset_commission_table() -> None:
    """Reset the cached table. Useful for testing."""
    global _commission_table
    _commission_table = None
