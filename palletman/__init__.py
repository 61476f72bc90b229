"""
Django Palletman — FIFO pallet allocation and timed stock reservations.

Usage:
    from palletman import inventory, StockError

    inventory.plan(tomatoes, 150)
    receipt = inventory.reserve('order-5531', tomatoes, 150, ttl=timedelta(minutes=30))
    inventory.commit(receipt.reservation_id)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'inventory':
        from palletman.service import Inventory
        return Inventory
    elif name in ('StockError', 'InvalidArgument', 'InsufficientStock',
                  'AlreadyFinalized', 'InvalidStateTransition', 'ConcurrencyConflict'):
        from palletman import exceptions
        return getattr(exceptions, name)
    elif name in ('Warehouse', 'Product', 'Pallet', 'Move', 'Reservation',
                  'ReservationLine', 'StockAlert', 'ReservationStatus', 'MoveKind'):
        from palletman import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'inventory',
    'StockError',
    'InvalidArgument',
    'InsufficientStock',
    'AlreadyFinalized',
    'InvalidStateTransition',
    'ConcurrencyConflict',
    'Warehouse',
    'Product',
    'Pallet',
    'Move',
    'Reservation',
    'ReservationLine',
    'StockAlert',
    'ReservationStatus',
    'MoveKind',
]

__version__ = '0.1.0'
