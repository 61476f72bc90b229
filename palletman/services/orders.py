"""
Order flow — order-level helpers over the per-line reservation API.

The core only knows reservations; these helpers apply it to a whole order:
preview, reserve every line with compensation, commit on payment, release on
cancellation, extend while the customer is still paying.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Max

from palletman.adapters.commission import get_commission_table
from palletman.conf import palletman_settings
from palletman.exceptions import (
    AlreadyFinalized,
    ConcurrencyConflict,
    InsufficientStock,
    InvalidArgument,
    InvalidStateTransition,
)
from palletman.models.enums import ReservationStatus
from palletman.models.reservation import Reservation
from palletman.services.planning import AllocationPlanner, resolve_product, to_quantity
from palletman.services.reservations import ReservationManager, ReservationReceipt

logger = logging.getLogger('palletman')


@dataclass(frozen=True)
class LinePreview:
    """Customer-facing view of one cart line. Never carries pallet ids."""

    product_id: int
    product_name: str
    requested: Decimal
    available: Decimal
    price: Decimal

    @property
    def status(self) -> str:
        if self.available >= self.requested:
            return 'ok'
        if self.available > 0:
            return 'partial'
        return 'unavailable'


@dataclass(frozen=True)
class OrderPreview:
    lines: tuple[LinePreview, ...]
    total_weight: Decimal
    total_price: Decimal
    commission_rate: Decimal | None = None

    @property
    def fully_fulfilled(self) -> bool:
        return all(line.status == 'ok' for line in self.lines)


def _merge_lines(lines) -> list[tuple]:
    """Resolve products and sum duplicate lines, keeping first-seen order."""
    merged: dict[int, list] = {}
    for product, quantity in lines:
        product = resolve_product(product)
        quantity = to_quantity(quantity)
        if product.pk in merged:
            merged[product.pk][1] += quantity
        else:
            merged[product.pk] = [product, quantity]
    if not merged:
        raise InvalidArgument('INVALID_ARGUMENT', 'Order has no lines')
    return [(product, quantity) for product, quantity in merged.values()]


class OrderFlow(AllocationPlanner, ReservationManager):
    """Order-level reservation methods."""

    @classmethod
    def preview_order(cls, lines) -> OrderPreview:
        """
        Feasibility and price preview of a cart. Read-only.

        Args:
            lines: Iterable of (product, quantity) pairs
        """
        previews = []
        for product, quantity in _merge_lines(lines):
            plan = cls.plan(product, quantity)
            previews.append(LinePreview(
                product_id=product.pk,
                product_name=str(product),
                requested=quantity,
                available=plan.total_allocated,
                price=product.price_for(quantity),
            ))

        total_weight = sum((p.requested for p in previews), Decimal('0'))
        table = get_commission_table()
        return OrderPreview(
            lines=tuple(previews),
            total_weight=total_weight,
            total_price=sum((p.price for p in previews), Decimal('0')),
            commission_rate=table.rate_for(total_weight) if table else None,
        )

    @classmethod
    def reserve_order(cls, order_ref: str, lines, ttl=None) -> list[ReservationReceipt]:
        """
        Reserve every line of an order, one reservation per product.

        If a line cannot be reserved, reservations already made by this call
        are released before the error is re-raised.

        Raises:
            InvalidArgument: Empty order, bad quantity or product
            InsufficientStock: A line could not be reserved (also after
                CONFLICT_RETRIES lost races)
        """
        receipts: list[ReservationReceipt] = []
        try:
            for product, quantity in _merge_lines(lines):
                receipts.append(
                    cls._reserve_with_retries(order_ref, product, quantity, ttl)
                )
        except Exception as exc:
            for receipt in receipts:
                try:
                    cls.release(receipt.reservation_id, reason='Order compensation')
                except AlreadyFinalized:
                    pass
            if receipts:
                logger.warning(
                    "stock.order.compensated",
                    extra={
                        "order_ref": order_ref,
                        "released": len(receipts),
                        "code": getattr(exc, "code", type(exc).__name__),
                    },
                )
            raise
        return receipts

    @classmethod
    def _reserve_with_retries(cls, order_ref, product, quantity, ttl) -> ReservationReceipt:
        retries = palletman_settings.CONFLICT_RETRIES
        conflict = None
        for attempt in range(retries + 1):
            try:
                return cls.reserve(order_ref, product, quantity, ttl=ttl)
            except ConcurrencyConflict as exc:
                conflict = exc
                logger.info(
                    "stock.conflict.retry",
                    extra={
                        "order_ref": order_ref,
                        "product": str(product),
                        "attempt": attempt + 1,
                    },
                )
        raise InsufficientStock(
            available=cls.available(product),
            requested=quantity,
            retries=retries,
        ) from conflict

    @classmethod
    def commit_order(cls, order_ref: str) -> list[Reservation]:
        """
        Commit every active reservation of the order (payment confirmed).

        All or nothing: if one reservation has lapsed, none is committed.

        Raises:
            InvalidStateTransition: No active reservations, or one has lapsed
        """
        with transaction.atomic():
            pks = list(
                Reservation.objects.for_order(order_ref)
                .filter(status=ReservationStatus.ACTIVE)
                .order_by('pk')
                .values_list('pk', flat=True)
            )
            if not pks:
                raise InvalidStateTransition(
                    'INVALID_STATE_TRANSITION',
                    'No active reservations for this order',
                    order_ref=order_ref,
                )
            return [cls.commit(f"rsv:{pk}") for pk in pks]

    @classmethod
    def release_order(cls, order_ref: str, reason: str = 'Order cancelled') -> int:
        """
        Release every active reservation of the order.

        Committed reservations are left alone (refunds go through restock()).

        Returns:
            Number of reservations released
        """
        with transaction.atomic():
            pks = list(
                Reservation.objects.for_order(order_ref)
                .filter(status=ReservationStatus.ACTIVE)
                .order_by('pk')
                .values_list('pk', flat=True)
            )
            for pk in pks:
                cls.release(f"rsv:{pk}", reason=reason)
        return len(pks)

    @classmethod
    def extend_order(cls, order_ref: str, minutes: int) -> datetime:
        """
        Push back the expiry of the order's live reservations.

        Lapsed reservations are not revived.

        Returns:
            The new latest expires_at

        Raises:
            InvalidArgument: Non-positive minutes
            InvalidStateTransition: No live reservations
        """
        if minutes <= 0:
            raise InvalidArgument('INVALID_TTL', minutes=minutes)

        with transaction.atomic():
            live = Reservation.objects.select_for_update().for_order(order_ref).live()
            pks = list(live.values_list('pk', flat=True))
            if not pks:
                raise InvalidStateTransition(
                    'INVALID_STATE_TRANSITION',
                    'No live reservations to extend',
                    order_ref=order_ref,
                )
            Reservation.objects.filter(pk__in=pks).update(
                expires_at=F('expires_at') + timedelta(minutes=minutes)
            )
            new_expiry = Reservation.objects.filter(pk__in=pks).aggregate(
                latest=Max('expires_at')
            )['latest']

        logger.info(
            "stock.order.extended",
            extra={"order_ref": order_ref, "minutes": minutes, "reservations": len(pks)},
        )
        return new_expiry
