"""
StockAlert model — configurable low stock trigger per product.

Usage:
    # Set alert threshold
    StockAlert.objects.create(product=tomatoes, min_quantity=Decimal('200'))

    # Check alerts (in a periodic task or after stock changes)
    from palletman.services.alerts import check_alerts
    triggered = check_alerts()
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockAlert(models.Model):
    """
    Configurable stock alert per product (optionally per warehouse).

    When available quantity drops below min_quantity, the alert is
    considered triggered.
    """

    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.CASCADE,
        related_name='alerts',
        verbose_name=_('Product'),
    )

    # Optional warehouse filter (None = all warehouses combined)
    warehouse = models.ForeignKey(
        'palletman.Warehouse',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='alerts',
        verbose_name=_('Warehouse'),
        help_text=_('Empty = sum of all warehouses'),
    )

    min_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Minimum quantity (kg)'),
        help_text=_('Triggers when available < this value'),
    )

    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Active'),
    )

    last_triggered_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Last triggered at'),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Stock alert')
        verbose_name_plural = _('Stock alerts')
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'warehouse'],
                name='unique_stock_alert_per_product_warehouse',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active'], name='palletman_s_is_acti_0c5d82_idx'),
        ]

    def __str__(self) -> str:
        where = f" @ {self.warehouse.code}" if self.warehouse else ""
        return f"Alert: {self.product}{where} < {self.min_quantity}"
