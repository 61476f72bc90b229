"""
Palletman Adapters.

Implementations of protocols for external systems.
"""

from palletman.adapters.commission import (
    TieredCommissionTable,
    get_commission_table,
    reset_commission_table,
)

__all__ = [
    "TieredCommissionTable",
    "get_commission_table",
    "reset_commission_table",
]
