"""
Tests for stock reservation
"""

from unittest.mock import Mock

import pytest

from conftest import stock_of
from order_service.errors import BadRequestError, NotAcceptableError, NotFoundError
from order_service.models import Order, OrderItem
from order_service.reservation import reserve_item, reserve_stock, reserve_stock_for_orders


def item(book_id, quantity, item_id="item-1", parent_id="order-1"):
    return OrderItem(id=item_id, parentId=parent_id, bookId=book_id, quantity=quantity)


class TestReserveStock:
    """Tests for reserve_stock on a batch of line items."""

    def test_decrements_stock(self, database):
        """Stock after equals stock before minus the quantity."""
        with database.begin() as tx:
            reserve_stock([item("book-a", 3)], tx)

        assert stock_of(database, "book-a") == 7

    def test_reserve_whole_stock(self, database):
        """Ordering exactly the available stock leaves zero."""
        with database.begin() as tx:
            reserve_stock([item("book-b", 5)], tx)

        assert stock_of(database, "book-b") == 0

    def test_multiple_books(self, database):
        with database.begin() as tx:
            reserve_stock([item("book-a", 1, "i1"), item("book-d", 40, "i2")], tx)

        assert stock_of(database, "book-a") == 9
        assert stock_of(database, "book-d") == 60

    @pytest.mark.parametrize("quantity", [0, -1, -20])
    def test_non_positive_quantity(self, database, quantity):
        """Quantity <= 0 is rejected as NotAcceptable and stock stays unchanged."""
        with pytest.raises(NotAcceptableError) as exc_info:
            with database.begin() as tx:
                reserve_stock([item("book-a", quantity, "item-7", "order-3")], tx)

        message = exc_info.value.message
        assert "book-a" in message
        assert "order-3" in message
        assert "item-7" in message
        assert exc_info.value.status == 406
        assert stock_of(database, "book-a") == 10

    @pytest.mark.parametrize("book_id", [None, "", "   "])
    def test_blank_book_id(self, database, book_id):
        with pytest.raises(NotFoundError):
            with database.begin() as tx:
                reserve_stock([item(book_id, 1)], tx)

    def test_unknown_book_rolls_back_batch(self, database):
        """An unknown book fails the batch and no stock is changed for any book."""
        with pytest.raises(NotFoundError) as exc_info:
            with database.begin() as tx:
                reserve_stock([item("book-a", 2, "i1"), item("no-such-book", 1, "i2")], tx)

        assert "no-such-book" in exc_info.value.message
        assert exc_info.value.status == 404
        assert stock_of(database, "book-a") == 10

    def test_insufficient_stock(self, database):
        with pytest.raises(BadRequestError) as exc_info:
            with database.begin() as tx:
                reserve_stock([item("book-b", 6)], tx)

        assert "insufficient stock" in exc_info.value.message
        assert exc_info.value.status == 400
        assert stock_of(database, "book-b") == 5

    def test_out_of_stock_book(self, database):
        with pytest.raises(BadRequestError):
            with database.begin() as tx:
                reserve_stock([item("book-c", 1)], tx)

        assert stock_of(database, "book-c") == 0

    def test_same_book_twice_sees_first_decrement(self, database):
        """Stock 5, [3, 3]: the second item sees 2 left, fails, and the batch rolls back."""
        with pytest.raises(BadRequestError) as exc_info:
            with database.begin() as tx:
                reserve_stock([item("book-b", 3, "i1"), item("book-b", 3, "i2")], tx)

        assert "available 2" in exc_info.value.message
        assert stock_of(database, "book-b") == 5

    def test_fail_fast_stops_at_first_error(self):
        """Items after the failing one are never looked at."""
        tx = Mock()
        tx.get_book_stock.return_value = 10
        tx.update_book_stock.return_value = True

        with pytest.raises(NotAcceptableError):
            reserve_stock([item("book-a", 1, "i1"), item("book-a", 0, "i2"), item("book-d", 1, "i3")], tx)

        tx.get_book_stock.assert_called_once_with("book-a")

    def test_empty_batch_is_noop(self, database):
        with database.begin() as tx:
            reserve_stock([], tx)
            reserve_stock(None, tx)

        assert stock_of(database, "book-a") == 10


class TestReserveItem:
    """Tests for the single-item reservation and its compare-and-swap update."""

    def test_returns_remaining_stock(self, database):
        with database.begin() as tx:
            assert reserve_item(item("book-d", 30), tx) == 70

    def test_update_uses_expected_stock(self):
        tx = Mock()
        tx.get_book_stock.return_value = 8
        tx.update_book_stock.return_value = True

        reserve_item(item("book-a", 3), tx)

        tx.update_book_stock.assert_called_once_with("book-a", 5, expected_stock=8)

    def test_concurrent_change_is_rejected(self):
        """If another writer changed the stock after the read, the item fails."""
        tx = Mock()
        tx.get_book_stock.return_value = 8
        tx.update_book_stock.return_value = False

        with pytest.raises(BadRequestError, match="changed concurrently"):
            reserve_item(item("book-a", 3), tx)

    def test_stale_expected_stock_does_not_update(self, database):
        with database.begin() as tx:
            assert tx.update_book_stock("book-a", 1, expected_stock=99) is False
            assert tx.get_book_stock("book-a") == 10

    def test_update_unknown_book(self, database):
        with database.begin() as tx:
            assert tx.update_book_stock("no-such-book", 1) is False


class TestReserveStockForOrders:
    """Tests for the order-level reservation."""

    def test_reserves_items_of_all_orders(self, database):
        orders = [
            Order(id="o1", items=[item("book-a", 2, "i1", "o1")]),
            Order(id="o2", items=[item("book-a", 3, "i2", "o2"), item("book-b", 1, "i3", "o2")]),
        ]
        with database.begin() as tx:
            reserve_stock_for_orders(orders, tx)

        assert stock_of(database, "book-a") == 5
        assert stock_of(database, "book-b") == 4

    def test_orders_without_items_are_skipped(self, database):
        with database.begin() as tx:
            reserve_stock_for_orders([Order(id="o1"), Order(id="o2", items=[])], tx)
            reserve_stock_for_orders(None, tx)

        assert stock_of(database, "book-a") == 10

    def test_failure_in_later_order_rolls_back_earlier_orders(self, database):
        orders = [
            Order(id="o1", items=[item("book-a", 4, "i1", "o1")]),
            Order(id="o2", items=[item("book-a", 7, "i2", "o2")]),
        ]
        with pytest.raises(BadRequestError):
            with database.begin() as tx:
                reserve_stock_for_orders(orders, tx)

        assert stock_of(database, "book-a") == 10
