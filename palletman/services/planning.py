"""
Allocation planning — FIFO allocation of a requested quantity over pallets.

Read-only: nothing here writes to the database, so plan() can back price
and feasibility previews as often as needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable

from django.db.models import Q
from django.utils import timezone

from palletman.exceptions import InvalidArgument
from palletman.freshness import filter_sellable
from palletman.models.pallet import Pallet
from palletman.models.product import Product


@dataclass(frozen=True)
class PalletAllocation:
    """Quantity taken from one pallet."""

    pallet_id: int
    pallet_code: str
    quantity: Decimal
    remaining: Decimal  # left available on the pallet after this allocation
    entry_date: datetime
    warehouse_id: int
    batch_number: str = ''


@dataclass(frozen=True)
class AllocationPlan:
    """Result of plan(): ordered allocations, oldest pallet first."""

    product_id: int
    requested: Decimal
    allocations: tuple[PalletAllocation, ...]
    total_allocated: Decimal

    @property
    def fully_fulfilled(self) -> bool:
        return self.total_allocated == self.requested

    @property
    def shortfall(self) -> Decimal:
        return max(Decimal('0'), self.requested - self.total_allocated)

    @property
    def pairs(self) -> list[tuple[int, Decimal]]:
        """(pallet_id, quantity) pairs in allocation order."""
        return [(a.pallet_id, a.quantity) for a in self.allocations]


QUANTITY_STEP = Decimal('0.001')


def to_quantity(value) -> Decimal:
    """
    Coerce a requested quantity to a positive Decimal in whole grams.

    Quantities are stored to the gram (three decimal places); finer values
    are refused.

    Raises:
        InvalidArgument('INVALID_QUANTITY'): If not a positive number of grams
    """
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
        if not quantity.is_finite() or quantity <= 0:
            raise InvalidArgument('INVALID_QUANTITY', requested=value)
        grams = quantity.quantize(QUANTITY_STEP)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgument('INVALID_QUANTITY', requested=value) from None
    if grams != quantity:
        raise InvalidArgument('INVALID_QUANTITY', requested=value, decimal_places=3)
    return grams


def resolve_product(product) -> Product:
    """
    Accept a Product instance or primary key and return the active Product.

    Raises:
        InvalidArgument('UNKNOWN_PRODUCT'): If missing or inactive
    """
    if isinstance(product, Product):
        if product.pk is not None and product.is_active:
            return product
        raise InvalidArgument('UNKNOWN_PRODUCT', product=str(product))
    try:
        return Product.objects.active().get(pk=product)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise InvalidArgument('UNKNOWN_PRODUCT', product=product) from None


def allocate_fifo(candidates: Iterable[tuple[Pallet, Decimal]],
                  requested: Decimal) -> tuple[list[PalletAllocation], Decimal]:
    """
    Greedy FIFO over (pallet, available) pairs already in FIFO order.

    Returns:
        (allocations, total_allocated)
    """
    allocations = []
    remaining = requested
    total = Decimal('0')

    for pallet, available in candidates:
        if remaining <= 0:
            break
        if available <= 0:
            continue

        take = min(available, remaining)
        allocations.append(PalletAllocation(
            pallet_id=pallet.pk,
            pallet_code=pallet.code,
            quantity=take,
            remaining=available - take,
            entry_date=pallet.entry_date,
            warehouse_id=pallet.warehouse_id,
            batch_number=pallet.batch_number,
        ))
        total += take
        remaining -= take

    return allocations, total


class AllocationPlanner:
    """Read-only allocation methods."""

    @classmethod
    def candidate_pallets(cls, product, warehouse=None, at=None):
        """
        Pallets that may hold available stock for the product, FIFO ordered,
        annotated with `_lapsed_qty`.

        Depleted pallets are included only while lapsed reservations still
        hold their quantity, since that quantity counts as available again.
        """
        now = at or timezone.now()
        pallets = (
            Pallet.objects.for_product(product)
            .with_lapsed_quantity(now)
            .filter(Q(is_depleted=False) | Q(_lapsed_qty__gt=0))
        )
        if warehouse is not None:
            pallets = pallets.filter(warehouse=warehouse)
        pallets = filter_sellable(pallets, timezone.localdate(now))
        return pallets.fifo()

    @classmethod
    def plan(cls, product, requested_quantity, warehouse=None, at=None) -> AllocationPlan:
        """
        Compute which pallets would satisfy a request, oldest first.

        Pallet availability is current_quantity plus what lapsed reservations
        still hold on it (those count as released even before the sweep).

        Args:
            product: Product instance or pk
            requested_quantity: Positive quantity in kg
            warehouse: Restrict to one warehouse (None = all)
            at: Evaluate expiry at this instant (None = now)

        Returns:
            AllocationPlan. Partial fulfilment is a normal result.

        Raises:
            InvalidArgument: Non-positive quantity or unknown product
        """
        requested = to_quantity(requested_quantity)
        product = resolve_product(product)

        pallets = cls.candidate_pallets(product, warehouse, at)
        allocations, total = allocate_fifo(
            ((p, p.current_quantity + p._lapsed_qty) for p in pallets),
            requested,
        )
        return AllocationPlan(
            product_id=product.pk,
            requested=requested,
            allocations=tuple(allocations),
            total_allocated=total,
        )

    @classmethod
    def available(cls, product, warehouse=None, at=None) -> Decimal:
        """Total quantity a new reservation could take right now."""
        product = resolve_product(product)
        return sum(
            (p.current_quantity + p._lapsed_qty
             for p in cls.candidate_pallets(product, warehouse, at)),
            Decimal('0'),
        )

    @classmethod
    def oldest_pallets(cls, product, limit: int = 10) -> list[PalletAllocation]:
        """Oldest pallets with their availability, for reporting."""
        product = resolve_product(product)
        return [
            PalletAllocation(
                pallet_id=p.pk,
                pallet_code=p.code,
                quantity=Decimal('0'),
                remaining=p.current_quantity + p._lapsed_qty,
                entry_date=p.entry_date,
                warehouse_id=p.warehouse_id,
                batch_number=p.batch_number,
            )
            for p in cls.candidate_pallets(product)[:limit]
        ]
