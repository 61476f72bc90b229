"""
Palletman Models.

Core models for pallet inventory:
- Warehouse: Where pallets are stored
- Product: Produce sold by weight
- Pallet: Dated stock lot of one product (FIFO unit)
- Move: Immutable ledger of pallet quantity changes
- Reservation / ReservationLine: Time-bounded holds for order lines
- StockAlert: Configurable low stock trigger per product
"""

from palletman.models.alert import StockAlert
from palletman.models.enums import MoveKind, ReservationStatus
from palletman.models.move import Move
from palletman.models.pallet import Pallet
from palletman.models.product import Product
from palletman.models.reservation import Reservation, ReservationLine
from palletman.models.warehouse import Warehouse

__all__ = [
    'ReservationStatus',
    'MoveKind',
    'Warehouse',
    'Product',
    'Pallet',
    'Move',
    'Reservation',
    'ReservationLine',
    'StockAlert',
]
