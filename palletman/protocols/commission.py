"""
Commission Rate Protocol — Interface for the distributor commission table.

Palletman defines this protocol; the commissions app (or any tier table)
implements it. The rate is a pure function of the order's total weight.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable


@runtime_checkable
class CommissionRateTable(Protocol):
    """Protocol for looking up a commission rate by weight tier."""

    def rate_for(self, total_weight: Decimal) -> Decimal:
        """
        Commission rate for an order of the given total weight.

        Args:
            total_weight: Total order weight in kg

        Returns:
            Rate in percent (e.g. Decimal('17'))
        """
        ...
