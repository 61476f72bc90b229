"""
Pytest fixtures for Palletman tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from palletman import inventory
from palletman.adapters.commission import reset_commission_table
from palletman.models import Product, Warehouse


User = get_user_model()


@pytest.fixture(autouse=True)
def _fresh_commission_table():
    """Commission table is cached per process; start every test clean."""
    reset_commission_table()
    yield
    reset_commission_table()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='warehouse-clerk',
        password='testpass123'
    )


@pytest.fixture
def warehouse(db):
    """Main cold room."""
    return Warehouse.objects.create(code='north-cold', name='North cold room')


@pytest.fixture
def packing_house(db):
    """Second warehouse."""
    return Warehouse.objects.create(code='packing-house', name='Packing house')


@pytest.fixture
def product(db):
    """Tomatoes at 2.50/kg."""
    return Product.objects.create(
        sku='TOM-001',
        name='Tomatoes',
        variety='Roma',
        price_per_kg=Decimal('2.50'),
    )


@pytest.fixture
def avocados(db):
    """Avocados at 4.00/kg."""
    return Product.objects.create(
        sku='AVO-001',
        name='Avocados',
        variety='Hass',
        price_per_kg=Decimal('4.00'),
    )


@pytest.fixture
def base_time():
    """Ten days ago; pallet entry dates are offsets from here."""
    return timezone.now() - timedelta(days=10)


@pytest.fixture
def make_pallet(db, warehouse, product, base_time):
    """
    Receive a pallet through the public API.

    `age` is the entry offset in days from base_time: lower = older.
    """
    def _make(quantity, age=0, product=product, warehouse=warehouse, **kwargs):
        return inventory.receive(
            Decimal(str(quantity)),
            product,
            warehouse,
            entry_date=base_time + timedelta(days=age),
            **kwargs,
        )
    return _make


@pytest.fixture
def three_pallets(make_pallet):
    """100 / 200 / 300 kg of tomatoes, oldest first."""
    return [make_pallet(100, age=0), make_pallet(200, age=1), make_pallet(300, age=2)]


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)
