"""
handlers.py — Lifecycle Hooks for Orders and Order Items

The host calls these hooks explicitly around its own create and read operations:

    before_create(entities, tx)         → stock reservation (before the rows are written)
    after_create_or_read(entities, tx)  → net amounts / order totals (derived values)

`entities` is a list of either `Order` or `OrderItem` models; the hook picks the rule
by the type of its elements.
"""

import logging
from typing import Sequence, Union

from .models import Order, OrderItem
from .persistence import PersistenceGateway
from .pricing import compute_net_amounts, compute_order_totals
from .reservation import reserve_stock, reserve_stock_for_orders

log = logging.getLogger(__name__)

Entities = Sequence[Union[Order, OrderItem]]


class OrdersEventHandler:
    """
    Business rules of the orders service, bound to the create and read events
    of the `Orders` and `OrderItems` entities.
    """

    def before_create(self, entities: Entities, tx: PersistenceGateway) -> None:
        """
        Validates books and decreases stock before orders or order items are persisted.

        Raises:
            OrderError: If any item violates a reservation rule.
        """
        if not entities:
            return
        if isinstance(entities[0], Order):
            reserve_stock_for_orders(entities, tx)
        else:
            reserve_stock(entities, tx)

    def after_create_or_read(self, entities: Entities, tx: PersistenceGateway) -> None:
        """Fills the derived net amounts (items) or totals (orders) after create or read."""
        if not entities:
            return
        if isinstance(entities[0], Order):
            compute_order_totals(entities, tx)
        else:
            compute_net_amounts(entities, tx)
