"""
Palletman configuration.

Usage in settings.py:
    PALLETMAN = {
        "RESERVATION_TTL_MINUTES": 30,
        "EXPIRED_BATCH_SIZE": 200,
        "CONFLICT_RETRIES": 3,
        "EXCLUDE_EXPIRED_PALLETS": True,
        "COMMISSION_TABLE": "palletman.adapters.commission.TieredCommissionTable",
        "COMMISSION_TIERS": [(0, 50, 15), (50, 75, 17), (75, None, 20)],
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


def _default_tiers() -> list:
    # (min_weight_kg, max_weight_kg or None, rate_percent)
    return [(0, 50, 15), (50, 75, 17), (75, None, 20)]


@dataclass
class PalletmanSettings:
    """Palletman configuration settings."""

    # Default reservation TTL in minutes
    RESERVATION_TTL_MINUTES: int = 30

    # Batch size for release_expired processing
    EXPIRED_BATCH_SIZE: int = 200

    # How many times order helpers retry a reservation after a lost race
    CONFLICT_RETRIES: int = 3

    # Skip pallets past their own expiry_date when planning
    EXCLUDE_EXPIRED_PALLETS: bool = True

    # Commission rate table backend (dotted path, empty = no commission)
    COMMISSION_TABLE: str = ""

    COMMISSION_TIERS: list = field(default_factory=_default_tiers)


def get_palletman_settings() -> PalletmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PALLETMAN", {})
    return PalletmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in PalletmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_palletman_settings(), name)


palletman_settings = _LazySettings()
