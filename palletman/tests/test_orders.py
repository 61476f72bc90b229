"""
Tests for order-level helpers: preview, reserve, commit, release, extend.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import DatabaseError
from django.utils import timezone

from palletman import (
    ConcurrencyConflict,
    InsufficientStock,
    InvalidArgument,
    InvalidStateTransition,
    inventory,
)
from palletman.models import Pallet, Reservation, ReservationStatus
from palletman.service import Inventory


pytestmark = pytest.mark.django_db


TIERED = 'palletman.adapters.commission.TieredCommissionTable'


class TestPreviewOrder:
    """Tests for inventory.preview_order()."""

    def test_line_statuses(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(20, product=avocados)

        preview = inventory.preview_order([(product, 80), (avocados, 50)])

        ok, partial = preview.lines
        assert ok.status == 'ok'
        assert partial.status == 'partial'
        assert partial.available == Decimal('20')
        assert not preview.fully_fulfilled

    def test_unavailable_line(self, product):
        preview = inventory.preview_order([(product, 10)])

        assert preview.lines[0].status == 'unavailable'

    def test_prices_and_weight(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(100, product=avocados)

        preview = inventory.preview_order([(product, '12.5'), (avocados, 10)])

        assert preview.lines[0].price == Decimal('31.25')
        assert preview.lines[1].price == Decimal('40.00')
        assert preview.total_price == Decimal('71.25')
        assert preview.total_weight == Decimal('22.5')
        assert preview.fully_fulfilled

    def test_duplicate_lines_merged(self, product, make_pallet):
        make_pallet(100)

        preview = inventory.preview_order([(product, 30), (product, 20)])

        assert len(preview.lines) == 1
        assert preview.lines[0].requested == Decimal('50')

    def test_no_commission_by_default(self, product, make_pallet):
        make_pallet(100)

        assert inventory.preview_order([(product, 10)]).commission_rate is None

    @pytest.mark.parametrize('weight,rate', [(10, 15), (50, 17), (62, 17), (74, 17), (75, 20), (300, 20)])
    def test_commission_tiers(self, settings, product, make_pallet, weight, rate):
        settings.PALLETMAN = {'COMMISSION_TABLE': TIERED}
        make_pallet(300)

        preview = inventory.preview_order([(product, weight)])

        assert preview.commission_rate == Decimal(rate)

    def test_preview_writes_nothing(self, product, make_pallet):
        make_pallet(100)

        inventory.preview_order([(product, 80)])

        assert Reservation.objects.count() == 0

    def test_empty_order(self, db):
        with pytest.raises(InvalidArgument):
            inventory.preview_order([])


class TestReserveOrder:
    """Tests for inventory.reserve_order()."""

    def test_one_reservation_per_product(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(100, product=avocados)

        receipts = inventory.reserve_order('order-9', [(product, 30), (avocados, 10), (product, 5)])

        assert len(receipts) == 2
        assert receipts[0].quantity == Decimal('35')
        assert Reservation.objects.for_order('order-9').count() == 2

    def test_compensation_on_failure(self, product, avocados, make_pallet):
        """If a later line fails, earlier lines of the same call are released."""
        tomatoes = make_pallet(100, product=product)
        make_pallet(5, product=avocados)

        with pytest.raises(InsufficientStock):
            inventory.reserve_order('order-9', [(product, 60), (avocados, 10)])

        reservation = Reservation.objects.get()
        assert reservation.status == ReservationStatus.RELEASED
        assert Pallet.objects.get(pk=tomatoes.pk).current_quantity == Decimal('100')

    def test_compensation_on_database_error(self, monkeypatch, product, avocados, make_pallet):
        """A database failure on a later line still releases the earlier ones."""
        tomatoes = make_pallet(100, product=product)
        make_pallet(100, product=avocados)
        real_reserve = Inventory.reserve.__func__

        def failing_for_avocados(cls, order_ref, line_product, *args, **kwargs):
            if line_product.pk == avocados.pk:
                raise DatabaseError('disk I/O error')
            return real_reserve(cls, order_ref, line_product, *args, **kwargs)

        monkeypatch.setattr(Inventory, 'reserve', classmethod(failing_for_avocados))

        with pytest.raises(DatabaseError):
            inventory.reserve_order('order-9', [(product, 60), (avocados, 10)])

        reservation = Reservation.objects.get()
        assert reservation.status == ReservationStatus.RELEASED
        assert reservation.metadata['release_reason'] == 'Order compensation'
        assert Pallet.objects.get(pk=tomatoes.pk).current_quantity == Decimal('100')

    def test_conflicts_retried(self, monkeypatch, product, make_pallet):
        make_pallet(100)
        real_reserve = Inventory.reserve.__func__
        calls = []

        def flaky(cls, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise ConcurrencyConflict()
            return real_reserve(cls, *args, **kwargs)

        monkeypatch.setattr(Inventory, 'reserve', classmethod(flaky))

        receipts = inventory.reserve_order('order-9', [(product, 40)])

        assert len(calls) == 2
        assert receipts[0].quantity == Decimal('40')

    def test_conflicts_exhausted_surface_as_insufficient(self, monkeypatch, product, make_pallet):
        """After CONFLICT_RETRIES lost races the caller sees InsufficientStock."""
        make_pallet(100)
        calls = []

        def always_conflict(cls, *args, **kwargs):
            calls.append(1)
            raise ConcurrencyConflict()

        monkeypatch.setattr(Inventory, 'reserve', classmethod(always_conflict))

        with pytest.raises(InsufficientStock) as exc:
            inventory.reserve_order('order-9', [(product, 40)])

        # CONFLICT_RETRIES = 2 in test settings
        assert len(calls) == 3
        assert exc.value.data['retries'] == 2
        assert exc.value.available == Decimal('100')


class TestCommitOrder:
    """Tests for inventory.commit_order()."""

    def test_commit_all_lines(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(100, product=avocados)
        inventory.reserve_order('order-9', [(product, 30), (avocados, 10)])

        committed = inventory.commit_order('order-9')

        assert len(committed) == 2
        assert set(Reservation.objects.values_list('status', flat=True)) == {ReservationStatus.COMMITTED}

    def test_lapsed_line_blocks_whole_order(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(100, product=avocados)
        inventory.reserve_order('order-9', [(product, 30), (avocados, 10)])
        Reservation.objects.filter(product=avocados).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        with pytest.raises(InvalidStateTransition) as exc:
            inventory.commit_order('order-9')

        assert exc.value.code == 'RESERVATION_LAPSED'
        assert not Reservation.objects.filter(status=ReservationStatus.COMMITTED).exists()

    def test_nothing_to_commit(self, db):
        with pytest.raises(InvalidStateTransition):
            inventory.commit_order('order-unknown')


class TestReleaseOrder:
    """Tests for inventory.release_order()."""

    def test_release_all(self, product, avocados, make_pallet):
        make_pallet(100, product=product)
        make_pallet(100, product=avocados)
        inventory.reserve_order('order-9', [(product, 30), (avocados, 10)])

        assert inventory.release_order('order-9') == 2
        assert inventory.available(product) == Decimal('100')
        assert inventory.available(avocados) == Decimal('100')

    def test_release_again_is_noop(self, product, make_pallet):
        make_pallet(100)
        inventory.reserve_order('order-9', [(product, 30)])
        inventory.release_order('order-9')

        assert inventory.release_order('order-9') == 0

    def test_committed_lines_left_alone(self, product, make_pallet):
        make_pallet(100)
        inventory.reserve_order('order-9', [(product, 30)])
        inventory.commit_order('order-9')

        assert inventory.release_order('order-9') == 0
        assert inventory.available(product) == Decimal('70')


class TestExtendOrder:
    """Tests for inventory.extend_order()."""

    def test_extend(self, product, make_pallet):
        make_pallet(100)
        receipt = inventory.reserve_order('order-9', [(product, 30)], ttl=timedelta(minutes=10))[0]

        new_expiry = inventory.extend_order('order-9', 15)

        assert new_expiry == receipt.expires_at + timedelta(minutes=15)
        assert Reservation.objects.get().expires_at == new_expiry

    def test_lapsed_not_revived(self, product, make_pallet):
        make_pallet(100)
        inventory.reserve_order('order-9', [(product, 30)])
        Reservation.objects.update(expires_at=timezone.now() - timedelta(seconds=1))

        with pytest.raises(InvalidStateTransition):
            inventory.extend_order('order-9', 15)

    @pytest.mark.parametrize('minutes', [0, -5])
    def test_invalid_minutes(self, product, make_pallet, minutes):
        with pytest.raises(InvalidArgument) as exc:
            inventory.extend_order('order-9', minutes)

        assert exc.value.code == 'INVALID_TTL'
