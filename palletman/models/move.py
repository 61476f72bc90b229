"""
Move model — Immutable ledger of pallet quantity changes.
"""

from django.conf import settings
from django.db import models, transaction
from django.db.models import Case, F, Value, When
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from palletman.exceptions import ConcurrencyConflict
from palletman.models.enums import MoveKind


class Move(models.Model):
    """
    Immutable record of a pallet quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Moves with inverse delta
    - Applies its delta to Pallet.current_quantity on save(), as a single
      conditional UPDATE that only matches while the result stays within
      0..initial_quantity

    This is the ONLY model that changes pallet quantity.
    """

    pallet = models.ForeignKey(
        'palletman.Pallet',
        on_delete=models.PROTECT,
        related_name='moves',
        verbose_name=_('Pallet'),
    )
    delta = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Delta'),
        help_text=_('Positive = into the pallet, negative = out of it'),
    )
    kind = models.CharField(
        max_length=20,
        choices=MoveKind.choices,
        verbose_name=_('Kind'),
    )
    reservation = models.ForeignKey(
        'palletman.Reservation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='moves',
        verbose_name=_('Reservation'),
    )

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Intake truck 14", "Order 5531"'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Move')
        verbose_name_plural = _('Moves')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['pallet', 'timestamp'], name='palletman_m_pallet__7a2f90_idx'),
            models.Index(fields=['timestamp'], name='palletman_m_timesta_b41e6d_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save move and apply its delta to the pallet atomically."""
        if self.pk:
            raise ValueError(
                "Moves are immutable. "
                "To correct one, create a new Move with the inverse delta."
            )

        if not self.reason:
            raise ValueError("Reason is required")

        if not self.delta:
            raise ValueError("Delta must be non-zero")

        with transaction.atomic():
            super().save(*args, **kwargs)

            from palletman.models.pallet import Pallet

            guarded = Pallet.objects.filter(pk=self.pallet_id)
            if self.delta < 0:
                guarded = guarded.filter(current_quantity__gte=-self.delta)
            else:
                guarded = guarded.filter(
                    current_quantity__lte=F('initial_quantity') - self.delta
                )

            updated = guarded.update(
                current_quantity=F('current_quantity') + self.delta,
                updated_at=timezone.now(),
            )
            if not updated:
                raise ConcurrencyConflict(
                    pallet_id=self.pallet_id,
                    delta=self.delta,
                    kind=self.kind,
                )

            Pallet.objects.filter(pk=self.pallet_id).update(
                is_depleted=Case(
                    When(current_quantity__lte=0, then=Value(True)),
                    default=Value(False),
                )
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — moves are immutable."""
        raise ValueError(
            "Moves are immutable. "
            "To reverse one, create a new Move with the inverse delta."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.kind} | {self.reason}"
