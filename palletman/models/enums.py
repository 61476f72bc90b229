"""
Enums for Palletman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ReservationStatus(models.TextChoices):
    """
    Reservation lifecycle status.

    ACTIVE is the only non-terminal status:
        ACTIVE → COMMITTED   payment confirmed, decrement becomes permanent
        ACTIVE → RELEASED    cancelled or compensated, stock returned
        ACTIVE → EXPIRED     TTL passed and the sweep returned the stock
    """
    ACTIVE = 'active', _('Active')
    COMMITTED = 'committed', _('Committed')
    RELEASED = 'released', _('Released')
    EXPIRED = 'expired', _('Expired')

    @classmethod
    def terminal(cls) -> list[str]:
        return [cls.COMMITTED, cls.RELEASED, cls.EXPIRED]


class MoveKind(models.TextChoices):
    """Why a pallet quantity changed."""
    RECEIVE = 'receive', _('Received')    # Warehouse intake
    RESERVE = 'reserve', _('Reserved')    # Held for an order line
    RELEASE = 'release', _('Released')    # Hold cancelled
    EXPIRE = 'expire', _('Expired')       # Hold lapsed, returned by the sweep
    RESTOCK = 'restock', _('Restocked')   # Committed stock returned on refund
