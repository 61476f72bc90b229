"""
Inventory services — modular organization of pallet operations.

    from palletman.services import AllocationPlanner, ReservationManager, WarehouseIntake, OrderFlow
"""

from palletman.services.intake import WarehouseIntake
from palletman.services.orders import OrderFlow
from palletman.services.planning import AllocationPlanner
from palletman.services.reservations import ReservationManager

__all__ = [
    'AllocationPlanner',
    'ReservationManager',
    'WarehouseIntake',
    'OrderFlow',
]
