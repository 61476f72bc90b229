"""
Tests for FIFO allocation planning (read-only path).
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from palletman import InvalidArgument, inventory
from palletman.models import Move, Pallet, Reservation
from palletman.services.planning import allocate_fifo


pytestmark = pytest.mark.django_db


class TestPlan:
    """Tests for inventory.plan()."""

    def test_oldest_pallet_first(self, product, three_pallets):
        """150 kg over 100/200/300 takes all of the oldest, 50 of the next."""
        p1, p2, _ = three_pallets

        plan = inventory.plan(product, Decimal('150'))

        assert plan.pairs == [(p1.pk, Decimal('100')), (p2.pk, Decimal('50'))]
        assert plan.total_allocated == Decimal('150')
        assert plan.fully_fulfilled
        assert plan.allocations[1].remaining == Decimal('150')

    def test_exact_single_pallet(self, product, three_pallets):
        plan = inventory.plan(product, Decimal('100'))

        assert plan.pairs == [(three_pallets[0].pk, Decimal('100'))]

    def test_partial_fulfilment(self, product, make_pallet):
        """Not enough stock: plan returns what exists, shortfall reported."""
        make_pallet(100, age=0)
        make_pallet(200, age=1)

        plan = inventory.plan(product, Decimal('400'))

        assert plan.total_allocated == Decimal('300')
        assert not plan.fully_fulfilled
        assert plan.shortfall == Decimal('100')

    def test_no_stock(self, product):
        plan = inventory.plan(product, Decimal('10'))

        assert plan.allocations == ()
        assert plan.total_allocated == Decimal('0')

    def test_entry_date_wins_over_creation_order(self, product, make_pallet):
        """A pallet registered later but with an older entry_date goes first."""
        newer = make_pallet(50, age=5)
        older = make_pallet(50, age=1)

        plan = inventory.plan(product, Decimal('60'))

        assert plan.pairs == [(older.pk, Decimal('50')), (newer.pk, Decimal('10'))]

    def test_same_entry_date_ordered_by_id(self, product, make_pallet):
        first = make_pallet(10, age=3)
        second = make_pallet(10, age=3)

        plan = inventory.plan(product, Decimal('15'))

        assert [a.pallet_id for a in plan.allocations] == [first.pk, second.pk]

    def test_accepts_product_pk_and_numbers(self, product, three_pallets):
        plan = inventory.plan(product.pk, 150)

        assert plan.total_allocated == Decimal('150')

    def test_fractional_quantities(self, product, make_pallet):
        make_pallet('10.5', age=0)
        make_pallet('2.25', age=1)

        plan = inventory.plan(product, Decimal('12'))

        assert plan.pairs[1][1] == Decimal('1.5')

    @pytest.mark.parametrize('quantity', [0, -5, 'abc', None])
    def test_invalid_quantity(self, product, three_pallets, quantity):
        with pytest.raises(InvalidArgument) as exc:
            inventory.plan(product, quantity)

        assert exc.value.code == 'INVALID_QUANTITY'

    @pytest.mark.parametrize('quantity', ['1.0006', '0.0004', Decimal('2.5001')])
    def test_finer_than_a_gram_refused(self, product, three_pallets, quantity):
        with pytest.raises(InvalidArgument) as exc:
            inventory.plan(product, quantity)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_trailing_zeros_accepted(self, product, three_pallets):
        plan = inventory.plan(product, Decimal('1.5000'))

        assert plan.requested == Decimal('1.5')
        assert plan.total_allocated == Decimal('1.5')

    def test_unknown_product(self, db):
        with pytest.raises(InvalidArgument) as exc:
            inventory.plan(999999, Decimal('10'))

        assert exc.value.code == 'UNKNOWN_PRODUCT'

    def test_inactive_product(self, product, three_pallets):
        product.is_active = False
        product.save()

        with pytest.raises(InvalidArgument) as exc:
            inventory.plan(product, Decimal('10'))

        assert exc.value.code == 'UNKNOWN_PRODUCT'

    def test_plan_writes_nothing(self, product, three_pallets):
        moves_before = Move.objects.count()

        inventory.plan(product, Decimal('550'))

        assert Move.objects.count() == moves_before
        assert Reservation.objects.count() == 0
        assert [p.current_quantity for p in Pallet.objects.fifo()] == [
            Decimal('100'), Decimal('200'), Decimal('300'),
        ]

    def test_plan_is_repeatable(self, product, three_pallets):
        assert inventory.plan(product, 250) == inventory.plan(product, 250)


class TestPlanWithReservations:
    """Plan reflects live holds and ignores lapsed ones."""

    def test_live_hold_reduces_availability(self, product, three_pallets):
        p1, p2, _ = three_pallets
        inventory.reserve('order-1', product, Decimal('120'))

        plan = inventory.plan(product, Decimal('100'))

        assert plan.pairs == [(p2.pk, Decimal('100'))]

    def test_lapsed_hold_counts_as_available_before_sweep(self, product, three_pallets):
        """A hold past its expiry is available even if nobody swept it yet."""
        p1 = three_pallets[0]
        inventory.reserve('order-1', product, Decimal('100'), ttl=60)

        later = timezone.now() + timedelta(seconds=61)
        plan = inventory.plan(product, Decimal('100'), at=later)

        assert plan.pairs == [(p1.pk, Decimal('100'))]
        assert Reservation.objects.get().status == 'active'

    def test_expiry_boundary_is_inclusive(self, product, make_pallet):
        """At exactly expires_at the hold no longer counts."""
        make_pallet(50)
        receipt = inventory.reserve('order-1', product, Decimal('50'), ttl=60)

        assert inventory.available(product, at=receipt.expires_at - timedelta(microseconds=1)) == 0
        assert inventory.available(product, at=receipt.expires_at) == Decimal('50')


class TestPlanFilters:
    """Warehouse and freshness filters."""

    def test_warehouse_filter(self, product, make_pallet, packing_house):
        make_pallet(100, age=0)
        remote = make_pallet(40, age=1, warehouse=packing_house)

        plan = inventory.plan(product, Decimal('100'), warehouse=packing_house)

        assert plan.pairs == [(remote.pk, Decimal('40'))]
        assert inventory.available(product) == Decimal('140')
        assert inventory.available(product, warehouse=packing_house) == Decimal('40')

    def test_expired_pallet_excluded(self, product, make_pallet, yesterday, today):
        make_pallet(100, age=0, expiry_date=yesterday)
        fresh = make_pallet(80, age=1, expiry_date=today)

        plan = inventory.plan(product, Decimal('100'))

        assert plan.pairs == [(fresh.pk, Decimal('80'))]

    def test_expired_pallet_included_when_disabled(self, settings, product, make_pallet, yesterday):
        settings.PALLETMAN = {'EXCLUDE_EXPIRED_PALLETS': False}
        old = make_pallet(100, age=0, expiry_date=yesterday)

        plan = inventory.plan(product, Decimal('50'))

        assert plan.pairs == [(old.pk, Decimal('50'))]

    def test_other_products_ignored(self, product, avocados, make_pallet):
        make_pallet(100, product=avocados)

        assert inventory.available(product) == Decimal('0')
        assert inventory.available(avocados) == Decimal('100')


class TestOldestPallets:
    """Tests for inventory.oldest_pallets()."""

    def test_fifo_order_and_limit(self, product, three_pallets):
        result = inventory.oldest_pallets(product, limit=2)

        assert [a.pallet_id for a in result] == [p.pk for p in three_pallets[:2]]
        assert result[0].remaining == Decimal('100')

    def test_depleted_pallets_skipped(self, product, three_pallets):
        inventory.reserve('order-1', product, Decimal('100'))

        result = inventory.oldest_pallets(product)

        assert [a.pallet_id for a in result] == [p.pk for p in three_pallets[1:]]


class TestAllocateFifo:
    """Pure allocation helper."""

    def test_skips_empty_candidates(self, product, three_pallets):
        p1, p2, p3 = three_pallets

        allocations, total = allocate_fifo(
            [(p1, Decimal('0')), (p2, Decimal('30')), (p3, Decimal('300'))],
            Decimal('50'),
        )

        assert [(a.pallet_id, a.quantity) for a in allocations] == [
            (p2.pk, Decimal('30')), (p3.pk, Decimal('20')),
        ]
        assert total == Decimal('50')

    def test_stops_when_satisfied(self, product, three_pallets):
        allocations, total = allocate_fifo(
            [(p, p.current_quantity) for p in three_pallets], Decimal('100'),
        )

        assert len(allocations) == 1
        assert total == Decimal('100')
