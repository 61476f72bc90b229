"""
Warehouse intake — new pallets entering stock.

Intake only creates pallets; it never touches existing ones, so it cannot
disturb quantities held by reservations.
"""

import logging

from django.db import transaction

from palletman.exceptions import InvalidArgument
from palletman.models.enums import MoveKind
from palletman.models.move import Move
from palletman.models.pallet import Pallet
from palletman.services.planning import resolve_product, to_quantity

logger = logging.getLogger('palletman')


class WarehouseIntake:
    """Pallet intake methods."""

    @classmethod
    def receive(cls, quantity, product, warehouse, entry_date=None,
                code: str = '', batch_number: str = '', expiry_date=None,
                user=None, reason: str = 'Intake', **metadata) -> Pallet:
        """
        Register a new pallet.

        Creates the Pallet empty and a RECEIVE Move with positive delta;
        Move.save() brings current_quantity up to the received weight.

        Raises:
            InvalidArgument: Non-positive quantity, unknown product,
                missing or inactive warehouse
        """
        quantity = to_quantity(quantity)
        product = resolve_product(product)
        if warehouse is None or not warehouse.is_active:
            raise InvalidArgument(
                'INVALID_ARGUMENT',
                'Warehouse is required and must be active',
                warehouse=str(warehouse),
            )

        fields = {}
        if entry_date is not None:
            fields['entry_date'] = entry_date

        with transaction.atomic():
            pallet = Pallet.objects.create(
                code=code,
                warehouse=warehouse,
                product=product,
                initial_quantity=quantity,
                current_quantity=0,
                batch_number=batch_number,
                expiry_date=expiry_date,
                metadata=metadata,
                **fields,
            )
            Move.objects.create(
                pallet=pallet,
                delta=quantity,
                kind=MoveKind.RECEIVE,
                reason=reason,
                user=user,
                metadata=metadata,
            )
            pallet.refresh_from_db()

        logger.info(
            "stock.pallet.received",
            extra={
                "pallet": pallet.code,
                "product": str(product),
                "qty": str(quantity),
                "warehouse": warehouse.code,
                "reason": reason,
            },
        )
        return pallet
