"""
Pallet freshness — which pallets may still be sold on a given day.

A pallet with no expiry_date never expires. A pallet with an expiry_date is
sellable up to and including that day.
"""

from datetime import date

from django.db.models import Q
from django.utils import timezone

from palletman.conf import palletman_settings


def is_sellable(pallet, on: date | None = None) -> bool:
    """
    Check if a specific pallet can still be sold on the given day.

    Args:
        pallet: Pallet instance (needs .expiry_date)
        on: Day of sale (None = today)
    """
    if pallet.expiry_date is None:
        return True
    return (on or timezone.localdate()) <= pallet.expiry_date


def filter_sellable(pallets, on: date | None = None):
    """
    Queryset version of is_sellable.

    Honours EXCLUDE_EXPIRED_PALLETS: when disabled, the queryset is returned
    unchanged.
    """
    if not palletman_settings.EXCLUDE_EXPIRED_PALLETS:
        return pallets
    day = on or timezone.localdate()
    return pallets.filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=day))
