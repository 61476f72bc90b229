"""
Stock alerts — check and trigger low stock alerts.

Usage:
    from palletman.services.alerts import check_alerts

    # Run periodically (celery beat, cron) or after intake/reservations
    triggered = check_alerts()
    # Returns list of (StockAlert, current_available) tuples
"""

import logging
from decimal import Decimal

from django.utils import timezone

from palletman.models.alert import StockAlert
from palletman.services.planning import AllocationPlanner

logger = logging.getLogger('palletman')


def check_alerts(product=None) -> list[tuple[StockAlert, Decimal]]:
    """
    Check all active alerts and return those that are triggered.

    An alert is triggered when available quantity < min_quantity.
    Availability is the same figure plan() works with.

    Args:
        product: Optional product to check alerts for (None = all).

    Returns:
        List of (alert, current_available) tuples for triggered alerts.
    """
    qs = StockAlert.objects.filter(is_active=True, product__is_active=True)
    if product is not None:
        qs = qs.filter(product=product)

    triggered = []
    now = timezone.now()

    for alert in qs.select_related('product', 'warehouse'):
        available = AllocationPlanner.available(
            alert.product, warehouse=alert.warehouse, at=now,
        )

        if available < alert.min_quantity:
            alert.last_triggered_at = now
            alert.save(update_fields=['last_triggered_at'])
            triggered.append((alert, available))
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "alert_id": alert.pk,
                    "product_id": alert.product_id,
                    "min_quantity": str(alert.min_quantity),
                    "available": str(available),
                    "warehouse": alert.warehouse.code if alert.warehouse else "all",
                },
            )

    return triggered
