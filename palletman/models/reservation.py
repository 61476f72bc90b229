"""
Reservation model — time-bounded hold on pallet stock for one order line.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from palletman.models.enums import ReservationStatus


class ReservationQuerySet(models.QuerySet):

    def for_order(self, order_ref: str):
        return self.filter(order_ref=order_ref)

    def live(self, at=None):
        """ACTIVE and not past expires_at."""
        now = at or timezone.now()
        return self.filter(status=ReservationStatus.ACTIVE, expires_at__gt=now)

    def lapsed(self, at=None):
        """ACTIVE but past expires_at — waiting for the sweep."""
        now = at or timezone.now()
        return self.filter(status=ReservationStatus.ACTIVE, expires_at__lte=now)


class Reservation(models.Model):
    """
    Hold against one or more pallets for one order line item.

    LIFECYCLE:

        ┌────────┐  commit()   ┌───────────┐
        │ ACTIVE │ ──────────► │ COMMITTED │   (restock() may reverse the
        └────────┘             └───────────┘    decrement, status stays)
            │   │
            │   │ release()    ┌──────────┐
            │   └────────────► │ RELEASED │
            │                  └──────────┘
            │ release_expired()┌──────────┐
            └────────────────► │ EXPIRED  │
                               └──────────┘

    The pallets' current_quantity is decremented when the reservation is
    created and incremented again on release/expiry; commit changes no
    quantity.
    """

    order_ref = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Order reference'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Product'),
    )
    requested_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Requested quantity (kg)'),
    )
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Released automatically if not committed by this time'),
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Resolved at'),
        help_text=_('When the reservation was committed, released or expired'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='palletman_r_status_5d0b7f_idx'),
            models.Index(fields=['order_ref', 'status'], name='palletman_r_order_r_3e9c41_idx'),
        ]

    @property
    def reservation_id(self) -> str:
        """Return reservation identifier in standard format."""
        return f"rsv:{self.pk}"

    @property
    def quantity(self) -> Decimal:
        """Total held across all lines."""
        return self.lines.aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    @property
    def is_lapsed(self) -> bool:
        """Still ACTIVE but past its expiry."""
        return self.is_active and timezone.now() >= self.expires_at

    def __str__(self) -> str:
        return f"{self.reservation_id} {self.requested_quantity}kg {self.product} ({self.status})"


class ReservationLine(models.Model):
    """One (pallet, quantity) pair of a reservation, in FIFO order."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name='lines',
    )
    pallet = models.ForeignKey(
        'palletman.Pallet',
        on_delete=models.PROTECT,
        related_name='reservation_lines',
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    sequence = models.PositiveSmallIntegerField(default=0)

    class Meta:
        verbose_name = _('Reservation line')
        verbose_name_plural = _('Reservation lines')
        ordering = ['reservation', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['reservation', 'pallet'],
                name='unique_reservation_line_pallet',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.pallet_id}: {self.quantity}"
