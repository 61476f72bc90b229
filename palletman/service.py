"""
Inventory Service — The single public interface for all pallet operations.

Usage:
    from palletman import inventory, StockError

    inventory.receive(Decimal('400'), tomatoes, north_cold)
    inventory.plan(tomatoes, Decimal('150'))            # preview, no writes
    receipt = inventory.reserve('order-5531', tomatoes, Decimal('150'))
    inventory.commit(receipt.reservation_id)            # payment confirmed
"""

from palletman.services.intake import WarehouseIntake
from palletman.services.orders import OrderFlow


class Inventory(OrderFlow, WarehouseIntake):
    """
    Single interface for all pallet inventory operations.

    Read path (no writes):
        plan, available, oldest_pallets, preview_order

    Reservation lifecycle (per order line):
        reserve → commit | release | (expiry) release_expired
        restock reverses a committed reservation on refund

    Order helpers:
        reserve_order, commit_order, release_order, extend_order

    Intake:
        receive

    IMPORTANT: All state-changing methods use atomic transactions
    with row locking. See each method's docstring.
    """
