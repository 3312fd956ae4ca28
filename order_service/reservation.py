"""
reservation.py — Stock Reservation for New Order Items

Validates every new line item against the current book stock and decrements the stock
before the items are persisted.

Rules per item, in input order:
    1. Blank or missing book id          → NotFoundError
    2. Quantity <= 0                      → NotAcceptableError
    3. Book id does not resolve           → NotFoundError
    4. Stock smaller than quantity        → BadRequestError
    5. Otherwise the stock is decremented immediately, so that a later item of the
       same batch referencing the same book sees the reduced stock.

Nothing here commits or rolls back. The caller runs the reservation inside one
transaction and discards it on the first error, which restores every decrement
already applied for the batch.
"""

import logging
from typing import Iterable, Optional

from .errors import BadRequestError, NotAcceptableError, book_not_found, has_text
from .models import Order, OrderItem
from .persistence import PersistenceGateway

log = logging.getLogger(__name__)


def reserve_item(item: OrderItem, tx: PersistenceGateway) -> int:
    """
    Reserves stock for a single line item.

    Args:
        item (OrderItem): The line item to reserve.
        tx (PersistenceGateway): Gateway bound to the caller's transaction.
    Returns:
        int: The remaining stock of the book after the reservation.
    Raises:
        NotFoundError: If the book id is blank or unknown.
        NotAcceptableError: If the quantity is zero or negative.
        BadRequestError: If the stock does not cover the quantity.
    """
    book_id = item.bookId
    log_prefix = f"[Order: {item.parentId}]"

    if not has_text(book_id):
        raise book_not_found(book_id)

    if item.quantity <= 0:
        raise NotAcceptableError(
            f"Book with id : {book_id} in order # : {item.parentId} and line item # : {item.id} "
            f"has '{item.quantity}' quantity"
        )

    stock = tx.get_book_stock(book_id)
    if stock is None:
        log.warning(f"{log_prefix} Buch {book_id} nicht gefunden.")
        raise book_not_found(book_id)

    if stock < item.quantity:
        log.warning(f"{log_prefix} Buch {book_id}: nicht genug auf Lager ({stock} < {item.quantity}).")
        raise BadRequestError(
            f"Not enough books on stock (insufficient stock) for book {book_id}: "
            f"requested {item.quantity}, available {stock}"
        )

    remaining = stock - item.quantity
    # Compare-and-swap: fails if another transaction changed the stock since the read
    if not tx.update_book_stock(book_id, remaining, expected_stock=stock):
        log.warning(f"{log_prefix} Lagerbestand von Buch {book_id} wurde parallel geändert.")
        raise BadRequestError(
            f"Not enough books on stock (insufficient stock) for book {book_id}: "
            f"stock changed concurrently"
        )

    log.debug(f"{log_prefix} Buch {book_id}: {item.quantity} reserviert, Restbestand {remaining}.")
    return remaining


def reserve_stock(items: Optional[Iterable[OrderItem]], tx: PersistenceGateway) -> None:
    """
    Reserves stock for a batch of new line items, item by item.

    Args:
        items (Iterable[OrderItem]): Items about to be created. None or empty is a no-op.
        tx (PersistenceGateway): Gateway bound to the caller's transaction.
    Raises:
        OrderError: On the first item that violates a rule. Items after it are not processed.
    """
    for item in items or []:
        reserve_item(item, tx)


def reserve_stock_for_orders(orders: Optional[Iterable[Order]], tx: PersistenceGateway) -> None:
    """Reserves stock for the embedded items of new orders, order by order."""
    for order in orders or []:
        if order.items:
            log.info(f"[Order: {order.id}] Prüfe und reserviere Lagerbestand für {len(order.items)} Position(en).")
            reserve_stock(order.items, tx)
