"""
Warehouse model — Where pallets are stored.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Warehouse(models.Model):
    """
    Storage location for pallets (cold room, packing house, depot).

    Warehouses are stable entities, created during system setup.

    Examples:
        Warehouse.objects.create(code='north-cold', name='North cold room')
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Code'),
        help_text=_('Unique identifier (e.g. north-cold, packing-house)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Name'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Active'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadata'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Warehouse')
        verbose_name_plural = _('Warehouses')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name
