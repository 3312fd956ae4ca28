"""
pricing.py — Net Amounts and Order Totals

Both values are derived and never persisted. They are recomputed from the current book
prices every time items or orders are created or read, so a price change is visible on
the next read.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from .errors import book_not_found, has_text
from .models import Order, OrderItem
from .persistence import PersistenceGateway

log = logging.getLogger(__name__)


def compute_net_amounts(items: Optional[Iterable[OrderItem]], tx: PersistenceGateway) -> None:
    """
    Sets `netAmount = price x quantity` on every item.

    An item whose book can no longer be found keeps no net amount and is skipped, so
    historical orders stay readable after a book was removed. A blank book id is
    still an error.

    Raises:
        NotFoundError: If an item has no book id.
    """
    for item in items or []:
        if not has_text(item.bookId):
            raise book_not_found(item.bookId)

        price = tx.get_book_price(item.bookId)
        if price is None:
            log.warning(f"[Order: {item.parentId}] Buch {item.bookId} nicht gefunden, Nettobetrag übersprungen.")
            continue

        # Not persisted: derived on every create/read
        item.netAmount = price * Decimal(item.quantity)


def compute_order_totals(orders: Optional[Iterable[Order]], tx: PersistenceGateway) -> None:
    """
    Sets `total` on every order to the sum of the net amounts of all its persisted items.

    Steps per order:
        1. Price the items carried in the payload (if any).
        2. Load every item persisted under the order, independent of the payload.
        3. Price that full set.
        4. Sum the net amounts into `total`.

    Errors from pricing are not caught here and abort the computation.
    """
    for order in orders or []:
        # 1. Items from the payload
        if order.items:
            compute_net_amounts(order.items, tx)

        # 2./3. All items from the database, priced with the current prices
        persisted = tx.list_order_items_by_parent(order.id)
        if persisted:
            compute_net_amounts(persisted, tx)

        # 4. Items skipped for a missing book contribute nothing
        order.total = sum(
            (item.netAmount for item in persisted if item.netAmount is not None),
            Decimal("0"),
        )
        log.debug(f"[Order: {order.id}] Summe berechnet: {order.total} ({len(persisted)} Position(en)).")
