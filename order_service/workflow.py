"""
workflow.py — Create and Read Flows for Orders and Order Items

This module plays the part of the hosting service: it owns the transaction boundary,
writes the rows and fires the lifecycle hooks in the right sequence.

Create Flow:
1. Assign missing ids and link embedded items to their order
2. Open one transaction
3. before_create → reserve stock (validates books, decrements stock)
4. Persist orders and items
5. after_create_or_read → compute net amounts / totals
6. Commit; on any error the whole transaction is rolled back

Read Flow:
1. Load the rows inside a transaction
2. after_create_or_read → recompute derived values from current prices
"""

import uuid
from typing import List, Sequence

from .errors import OrderError, has_text, order_not_found
from .handlers import OrdersEventHandler
from .logging_config import get_logger
from .models import Order, OrderItem
from .persistence import Database

log = get_logger(__name__)

handler = OrdersEventHandler()


def _assign_ids(orders: Sequence[Order]) -> List[Order]:
    """Returns copies of the orders with missing ids generated; the given models stay untouched."""
    copies = [order.model_copy(deep=True) for order in orders]
    for order in copies:
        if not order.id:
            order.id = str(uuid.uuid4())
        for item in order.items:
            if not item.id:
                item.id = str(uuid.uuid4())
            # Deep insert: items always belong to the enclosing order
            item.parentId = order.id
    return copies


def create_orders(database: Database, orders: List[Order]) -> List[Order]:
    """
    Creates orders together with their embedded items.

    All orders of the call share one transaction: if a single item is rejected,
    no order is stored and no stock is consumed.

    Args:
        database (Database): Target database.
        orders (List[Order]): New orders. Ids are generated when missing. Not modified.
    Returns:
        List[Order]: Copies of the orders with ids, item net amounts and totals filled in.
    Raises:
        OrderError: If a reservation rule is violated or an id is already taken.
    """
    orders = _assign_ids(orders)
    log_prefix = f"[Order: {', '.join(o.id for o in orders)}]"
    log.info(f"{log_prefix} Neue Bestellung erhalten.")

    try:
        with database.begin() as tx:
            # --- 1. Reservation ---
            handler.before_create(orders, tx)

            # --- 2. Persist ---
            for order in orders:
                tx.insert_order(order)
                tx.insert_order_items(order.items)

            # --- 3. Derived values ---
            handler.after_create_or_read(orders, tx)

    except OrderError as e:
        log.error(f"{log_prefix} Bestellung abgelehnt: {e}")
        raise

    log.info(f"{log_prefix} Bestellung angelegt. Summe: {', '.join(str(o.total) for o in orders)}")
    return orders


def create_order_items(database: Database, items: List[OrderItem]) -> List[OrderItem]:
    """
    Adds items to existing orders.

    Args:
        database (Database): Target database.
        items (List[OrderItem]): New items. Ids are generated when missing. Not modified.
    Returns:
        List[OrderItem]: Copies of the items with ids and net amounts filled in.
    Raises:
        NotFoundError: If an item's parent order does not exist.
        OrderError: If a reservation rule is violated. Nothing is stored in that case.
    """
    items = [item.model_copy() for item in items]
    for item in items:
        if not item.id:
            item.id = str(uuid.uuid4())
    log_prefix = f"[Order: {', '.join(sorted({str(i.parentId) for i in items}))}]"

    try:
        with database.begin() as tx:
            # Items belong to exactly one stored order
            for parent_id in dict.fromkeys(item.parentId for item in items):
                if not has_text(parent_id) or tx.get_order(parent_id) is None:
                    raise order_not_found(parent_id)

            handler.before_create(items, tx)
            tx.insert_order_items(items)
            handler.after_create_or_read(items, tx)

    except OrderError as e:
        log.error(f"{log_prefix} Positionen abgelehnt: {e}")
        raise

    log.info(f"{log_prefix} {len(items)} Position(en) angelegt.")
    return items


def read_orders(database: Database, order_ids: Sequence[str]) -> List[Order]:
    """
    Loads orders and recomputes their totals from the current book prices.
    Unknown ids are left out of the result.
    """
    with database.begin() as tx:
        orders = [order for order in (tx.get_order(order_id) for order_id in order_ids) if order]
        handler.after_create_or_read(orders, tx)
    return orders


def read_order_items(database: Database, order_id: str) -> List[OrderItem]:
    """Loads the items of an order with freshly computed net amounts."""
    with database.begin() as tx:
        items = tx.list_order_items_by_parent(order_id)
        handler.after_create_or_read(items, tx)
    return items
