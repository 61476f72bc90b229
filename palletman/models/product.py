"""
Product model — produce sold by weight.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class ProductQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)


class Product(models.Model):
    """
    Sellable produce (tomatoes, avocados Hass, ...).

    Prices are per kilogram; a line total is always quantity × price_per_kg.
    """

    sku = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('SKU'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    variety = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Variety'),
    )
    unit = models.CharField(max_length=10, default='kg', verbose_name=_('Unit'))
    price_per_kg = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Price per kg'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('Product')
        verbose_name_plural = _('Products')
        ordering = ['name']

    def price_for(self, quantity: Decimal) -> Decimal:
        """Line total for a weight, rounded to cents."""
        return (self.price_per_kg * quantity).quantize(Decimal('0.01'))

    def __str__(self) -> str:
        if self.variety:
            return f"{self.name} ({self.variety})"
        return self.name
