"""
Exceptions for Palletman.

Every error is a StockError with a structured code for programmatic handling.
The subclasses split the codes by how a caller should react:

- InvalidArgument: fix the call (bad quantity, unknown product or reservation)
- InsufficientStock: not enough available stock, nothing was written
- AlreadyFinalized: the reservation is already released/expired (safe to ignore)
- InvalidStateTransition: the transition is not allowed from the current state
- ConcurrencyConflict: a guarded update lost a race, retry with a fresh plan
"""

from decimal import Decimal
from typing import Any


class StockError(Exception):
    """
    Structured exception for stock operations.

    Usage:
        try:
            inventory.reserve('order-17', tomatoes, Decimal('120'))
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} kg available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'STOCK_ERROR'

    _default_messages = {
        'STOCK_ERROR': 'Stock operation failed',
        'INVALID_ARGUMENT': 'Invalid argument',
        'INVALID_QUANTITY': 'Invalid quantity (must be positive)',
        'INVALID_TTL': 'Invalid reservation TTL (must be positive)',
        'UNKNOWN_PRODUCT': 'Product not found or inactive',
        'INVALID_RESERVATION': 'Reservation not found',
        'INSUFFICIENT_STOCK': 'Requested quantity is not available',
        'ALREADY_FINALIZED': 'Reservation is already finalized',
        'INVALID_STATE_TRANSITION': 'Transition not allowed from the current status',
        'RESERVATION_LAPSED': 'Reservation has expired',
        'CONCURRENT_MODIFICATION': 'Concurrent modification detected',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.data!r})"


class InvalidArgument(StockError):
    default_code = 'INVALID_ARGUMENT'


class InsufficientStock(StockError):
    default_code = 'INSUFFICIENT_STOCK'


class AlreadyFinalized(StockError):
    default_code = 'ALREADY_FINALIZED'


class InvalidStateTransition(StockError):
    default_code = 'INVALID_STATE_TRANSITION'


class ConcurrencyConflict(StockError):
    default_code = 'CONCURRENT_MODIFICATION'
