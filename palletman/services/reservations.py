"""
Reservations — hold lifecycle (reserve, commit, release, expire, restock).

All state-changing methods run under transaction.atomic() with row locks.
Lock order is always reservation rows first, then pallet rows in FIFO order,
so concurrent callers queue instead of deadlocking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.db import OperationalError, transaction
from django.utils import timezone

from palletman.conf import palletman_settings
from palletman.exceptions import (
    AlreadyFinalized,
    ConcurrencyConflict,
    InsufficientStock,
    InvalidArgument,
    InvalidStateTransition,
)
from palletman.freshness import filter_sellable
from palletman.models.enums import MoveKind, ReservationStatus
from palletman.models.move import Move
from palletman.models.pallet import Pallet
from palletman.models.reservation import Reservation, ReservationLine
from palletman.services.planning import allocate_fifo, resolve_product, to_quantity

logger = logging.getLogger('palletman')


@dataclass(frozen=True)
class ReservationReceipt:
    """What reserve() hands back to the order flow."""

    reservation_id: str
    quantity: Decimal
    expires_at: datetime


def _parse_reservation_id(reservation_id) -> int:
    """Extract PK from reservation_id."""
    if isinstance(reservation_id, str) and reservation_id.startswith('rsv:'):
        try:
            return int(reservation_id.split(':')[1])
        except (IndexError, ValueError):
            pass
    raise InvalidArgument('INVALID_RESERVATION', reservation_id=reservation_id)


def _lock_reservation(reservation_id) -> Reservation:
    pk = _parse_reservation_id(reservation_id)
    try:
        return Reservation.objects.select_for_update().get(pk=pk)
    except Reservation.DoesNotExist:
        raise InvalidArgument('INVALID_RESERVATION', reservation_id=reservation_id) from None


def _resolve_ttl(ttl) -> timedelta:
    if ttl is None:
        return timedelta(minutes=palletman_settings.RESERVATION_TTL_MINUTES)
    if not isinstance(ttl, timedelta):
        try:
            ttl = timedelta(seconds=ttl)
        except (TypeError, ValueError, OverflowError):
            raise InvalidArgument('INVALID_TTL', ttl=repr(ttl)) from None
    if ttl <= timedelta(0):
        raise InvalidArgument('INVALID_TTL', ttl=str(ttl))
    return ttl


def _return_lines(reservation: Reservation, kind: str, reason: str, user=None) -> None:
    """Put every line's quantity back on its pallet (guarded increments)."""
    for line in reservation.lines.order_by('sequence'):
        Move.objects.create(
            pallet_id=line.pallet_id,
            delta=line.quantity,
            kind=kind,
            reservation=reservation,
            reason=reason,
            user=user,
        )


def _finalize(reservation: Reservation, status: str, now=None, reason: str = '') -> None:
    """Return stock and move an ACTIVE reservation to RELEASED or EXPIRED."""
    kind = MoveKind.EXPIRE if status == ReservationStatus.EXPIRED else MoveKind.RELEASE
    _return_lines(reservation, kind, reason or f"{kind} {reservation.reservation_id}")

    reservation.status = status
    reservation.resolved_at = now or timezone.now()
    if reason:
        reservation.metadata['release_reason'] = reason
    reservation.save(update_fields=['status', 'resolved_at', 'metadata'])


class ReservationManager:
    """Reservation lifecycle methods."""

    @classmethod
    def reserve(cls, order_ref: str, product, requested_quantity,
                ttl=None, warehouse=None, **metadata) -> ReservationReceipt:
        """
        Hold the requested quantity for one order line, FIFO over pallets.

        The plan is recomputed here from locked pallet rows; a preview plan
        is never reused. All pallet decrements of the line are one unit.

        Args:
            order_ref: Order reference (the core does not know orders)
            product: Product instance or pk
            requested_quantity: Positive quantity in kg
            ttl: timedelta or seconds (None = RESERVATION_TTL_MINUTES)
            warehouse: Restrict to one warehouse (None = all)

        Returns:
            ReservationReceipt

        Raises:
            InvalidArgument: Bad quantity, ttl or product
            InsufficientStock: Not fully satisfiable, nothing written
            ConcurrencyConflict: A guarded update lost a race; retry from scratch

        Concurrency:
            - Runs under transaction.atomic()
            - Sweeps lapsed holds on the product first
            - select_for_update() on candidate pallets in FIFO order
            - Every decrement is a conditional UPDATE (see Move.save)
        """
        requested = to_quantity(requested_quantity)
        product = resolve_product(product)
        ttl = _resolve_ttl(ttl)

        try:
            with transaction.atomic():
                now = timezone.now()
                cls._expire_lapsed(
                    Reservation.objects.lapsed(now).filter(product=product), now
                )

                pallets = Pallet.objects.select_for_update().filter(
                    product=product, is_depleted=False,
                )
                if warehouse is not None:
                    pallets = pallets.filter(warehouse=warehouse)
                pallets = list(filter_sellable(pallets, timezone.localdate(now)).fifo())

                allocations, total = allocate_fifo(
                    ((p, p.current_quantity) for p in pallets), requested
                )
                if total < requested:
                    raise InsufficientStock(available=total, requested=requested)

                reservation = Reservation.objects.create(
                    order_ref=order_ref,
                    product=product,
                    requested_quantity=requested,
                    status=ReservationStatus.ACTIVE,
                    created_at=now,
                    expires_at=now + ttl,
                    metadata=metadata,
                )
                for sequence, allocation in enumerate(allocations):
                    ReservationLine.objects.create(
                        reservation=reservation,
                        pallet_id=allocation.pallet_id,
                        quantity=allocation.quantity,
                        sequence=sequence,
                    )
                    Move.objects.create(
                        pallet_id=allocation.pallet_id,
                        delta=-allocation.quantity,
                        kind=MoveKind.RESERVE,
                        reservation=reservation,
                        reason=f"Order {order_ref}",
                    )
        except OperationalError as exc:
            # Deadlock / lock timeout / serialization failure
            raise ConcurrencyConflict(product_id=product.pk, detail=str(exc)) from exc

        logger.info(
            "stock.reservation.created",
            extra={
                "order_ref": order_ref,
                "product": str(product),
                "qty": str(requested),
                "pallets": len(allocations),
                "reservation_id": reservation.reservation_id,
                "expires_at": reservation.expires_at.isoformat(),
            },
        )
        return ReservationReceipt(
            reservation_id=reservation.reservation_id,
            quantity=total,
            expires_at=reservation.expires_at,
        )

    @classmethod
    def commit(cls, reservation_id) -> Reservation:
        """
        Make a hold permanent (payment confirmed).

        Transition: ACTIVE -> COMMITTED. No quantity changes: the stock left
        the pallets when the reservation was created.

        Raises:
            InvalidArgument: Unknown reservation
            InvalidStateTransition: Not ACTIVE, or ACTIVE but lapsed
        """
        with transaction.atomic():
            reservation = _lock_reservation(reservation_id)

            if reservation.status != ReservationStatus.ACTIVE:
                raise InvalidStateTransition(
                    current=reservation.status,
                    expected=ReservationStatus.ACTIVE,
                    reservation_id=reservation.reservation_id,
                )
            if reservation.is_lapsed:
                raise InvalidStateTransition(
                    'RESERVATION_LAPSED',
                    reservation_id=reservation.reservation_id,
                    expires_at=reservation.expires_at.isoformat(),
                )

            reservation.status = ReservationStatus.COMMITTED
            reservation.resolved_at = timezone.now()
            reservation.save(update_fields=['status', 'resolved_at'])

        logger.info(
            "stock.reservation.committed",
            extra={"reservation_id": reservation.reservation_id},
        )
        return reservation

    @classmethod
    def release(cls, reservation_id, reason: str = 'Cancelled') -> Reservation:
        """
        Release a hold (cancellation, failed order, compensation).

        Transition: ACTIVE -> RELEASED, stock returned to its pallets.

        Raises:
            InvalidArgument: Unknown reservation
            AlreadyFinalized: Already RELEASED/EXPIRED (no mutation)
            InvalidStateTransition: COMMITTED (use restock() for refunds)
        """
        with transaction.atomic():
            reservation = _lock_reservation(reservation_id)

            if reservation.status == ReservationStatus.COMMITTED:
                raise InvalidStateTransition(
                    current=reservation.status,
                    expected=ReservationStatus.ACTIVE,
                    reservation_id=reservation.reservation_id,
                )
            if reservation.status != ReservationStatus.ACTIVE:
                raise AlreadyFinalized(
                    current=reservation.status,
                    reservation_id=reservation.reservation_id,
                )

            _finalize(reservation, ReservationStatus.RELEASED, reason=reason)

        logger.info(
            "stock.reservation.released",
            extra={"reservation_id": reservation.reservation_id, "reason": reason},
        )
        return reservation

    @classmethod
    def restock(cls, reservation_id, reason: str = 'Refund', user=None) -> Reservation:
        """
        Return committed stock to its pallets (refund path).

        The reservation stays COMMITTED; metadata['restocked_at'] marks that
        its decrement has been reversed, so it can only happen once.

        Raises:
            InvalidArgument: Unknown reservation
            InvalidStateTransition: Not COMMITTED
            AlreadyFinalized: Already restocked
        """
        with transaction.atomic():
            reservation = _lock_reservation(reservation_id)

            if reservation.status != ReservationStatus.COMMITTED:
                raise InvalidStateTransition(
                    current=reservation.status,
                    expected=ReservationStatus.COMMITTED,
                    reservation_id=reservation.reservation_id,
                )
            if reservation.metadata.get('restocked_at'):
                raise AlreadyFinalized(
                    reservation_id=reservation.reservation_id,
                    restocked_at=reservation.metadata['restocked_at'],
                )

            _return_lines(reservation, MoveKind.RESTOCK, reason, user=user)
            reservation.metadata['restocked_at'] = timezone.now().isoformat()
            reservation.metadata['restock_reason'] = reason
            reservation.save(update_fields=['metadata'])

        logger.info(
            "stock.reservation.restocked",
            extra={"reservation_id": reservation.reservation_id, "reason": reason},
        )
        return reservation

    @classmethod
    def release_expired(cls, now=None) -> int:
        """
        Expire every lapsed reservation, in batches.

        Returns:
            Number of reservations expired

        Concurrency:
            - Each batch runs under its own transaction.atomic()
            - Uses select_for_update() with SKIP LOCKED
            - Safe for multiple instances
        """
        now = now or timezone.now()
        total = 0
        batch_size = palletman_settings.EXPIRED_BATCH_SIZE

        while True:
            with transaction.atomic():
                batch = list(
                    Reservation.objects.select_for_update(skip_locked=True)
                    .lapsed(now)
                    .order_by('expires_at', 'pk')[:batch_size]
                )
                if not batch:
                    break
                for reservation in batch:
                    _finalize(reservation, ReservationStatus.EXPIRED, now=now,
                              reason='Expired automatically')
                total += len(batch)

        if total:
            logger.info(
                "stock.reservations.expired_released",
                extra={"released": total},
            )
        return total

    @classmethod
    def _expire_lapsed(cls, reservations, now) -> int:
        """Expire the given lapsed reservations inside the caller's transaction."""
        count = 0
        for reservation in reservations.select_for_update().order_by('pk'):
            if reservation.status != ReservationStatus.ACTIVE:
                continue
            _finalize(reservation, ReservationStatus.EXPIRED, now=now,
                      reason='Expired automatically')
            count += 1
        return count
