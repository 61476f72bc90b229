"""
Pallet model — a dated batch of one product at one warehouse.
"""

import logging
import uuid
from decimal import Decimal

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from palletman.models.enums import ReservationStatus


class PalletQuerySet(models.QuerySet):
    """Custom QuerySet for Pallet with convenience filters."""

    def for_product(self, product):
        return self.filter(product=product)

    def in_stock(self):
        """Pallets with quantity left."""
        return self.filter(is_depleted=False)

    def fifo(self):
        """Oldest first; ties broken by id so the order is deterministic."""
        return self.order_by('entry_date', 'pk')

    def with_lapsed_quantity(self, at=None):
        """
        Annotate `_lapsed_qty`: quantity held by reservations that are still
        ACTIVE but whose expires_at has passed. Those holds count as released
        for availability even before the sweep runs.
        """
        now = at or timezone.now()
        return self.annotate(
            _lapsed_qty=Coalesce(
                Sum(
                    'reservation_lines__quantity',
                    filter=Q(
                        reservation_lines__reservation__status=ReservationStatus.ACTIVE,
                        reservation_lines__reservation__expires_at__lte=now,
                    ),
                ),
                Decimal('0'),
            )
        )


class Pallet(models.Model):
    """
    Physical stock lot ("pallet").

    Invariants:
    - 0 <= current_quantity <= initial_quantity (database check constraints)
    - is_depleted is True iff current_quantity == 0
    - current_quantity only changes through Move.save(), never directly

    current_quantity already excludes every active reservation: holds are
    taken out of the pallet when reserved and put back when released.
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Pallet code'),
        help_text=_('Readable pallet identifier printed on the label.'),
    )
    warehouse = models.ForeignKey(
        'palletman.Warehouse',
        on_delete=models.PROTECT,
        related_name='pallets',
        verbose_name=_('Warehouse'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='pallets',
        verbose_name=_('Product'),
    )

    entry_date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name=_('Entry date'),
        help_text=_('When the pallet arrived. FIFO key.'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expiry date'),
        help_text=_('Last day the produce on this pallet can be sold'),
    )
    batch_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Batch number'),
    )

    initial_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Initial quantity (kg)'),
    )
    current_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Current quantity (kg)'),
    )
    is_depleted = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name=_('Depleted'),
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PalletQuerySet.as_manager()

    class Meta:
        verbose_name = _('Pallet')
        verbose_name_plural = _('Pallets')
        ordering = ['entry_date', 'pk']
        constraints = [
            models.CheckConstraint(
                condition=Q(current_quantity__gte=0),
                name='pallet_current_quantity_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(current_quantity__lte=F('initial_quantity')),
                name='pallet_current_quantity_within_initial',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'is_depleted', 'entry_date'],
                         name='palletman_p_product_8c1a2e_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def held(self) -> Decimal:
        """Quantity under ACTIVE reservations (lapsed ones included)."""
        return self.reservation_lines.filter(
            reservation__status=ReservationStatus.ACTIVE,
        ).aggregate(
            total=Coalesce(Sum('quantity'), Decimal('0'))
        )['total']

    def available_at(self, at=None) -> Decimal:
        """
        Quantity a new reservation could take.

        Lapsed holds are counted back in, regardless of sweep timing.
        """
        now = at or timezone.now()
        lapsed = self.reservation_lines.filter(
            reservation__status=ReservationStatus.ACTIVE,
            reservation__expires_at__lte=now,
        ).aggregate(
            total=Coalesce(Sum('quantity'), Decimal('0'))
        )['total']
        return self.current_quantity + lapsed

    @property
    def available(self) -> Decimal:
        return self.available_at()

    @property
    def is_expired(self) -> bool:
        """Is the produce on this pallet past its expiry date?"""
        if self.expiry_date is None:
            return False
        return timezone.localdate() > self.expiry_date

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def save(self, *args, **kwargs):
        if not self.code:
            entry = self.entry_date or timezone.now()
            self.code = f"PLT-{entry:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"
        super().save(*args, **kwargs)

    def recalculate(self) -> Decimal:
        """
        Recalculate current_quantity from the Move ledger.

        Use for integrity audits or after a detected inconsistency.

        Returns:
            New calculated quantity
        """
        total = self.moves.aggregate(
            t=Coalesce(Sum('delta'), Decimal('0'))
        )['t']

        if total != self.current_quantity:
            old = self.current_quantity
            self.current_quantity = total
            self.is_depleted = total <= 0
            self.save(update_fields=['current_quantity', 'is_depleted', 'updated_at'])

            logger = logging.getLogger('palletman')
            logger.warning(
                "stock.pallet.recalculated",
                extra={
                    "pallet": self.code,
                    "old": str(old),
                    "new": str(total),
                    "diff": str(total - old),
                },
            )

        return total

    def __str__(self) -> str:
        return f"{self.code} {self.product} [{self.warehouse.code}]: {self.current_quantity}"
