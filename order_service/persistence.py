"""
This module provides the persistence layer consumed by the order service:
- PersistenceGateway: the narrow interface the business rules depend on
- InMemoryDatabase: dict-backed store with serialized transactions (tests, local runs)
- SqlDatabase: SQLAlchemy-backed store for a relational database
Each Database hands out a transaction-scoped gateway via `begin()`. The caller owns
the transaction boundary: commit on normal exit, rollback on any exception.
"""

import copy
import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, create_engine, select, update
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import ConflictError
from .models import Book, Order, OrderItem

# Datenbank-Konfiguration (aus Env Vars)
DATABASE_URL = os.environ.get("ORDER_DB_URL", "sqlite:///bookstore.db")
ISOLATION_LEVEL = os.environ.get("ORDER_DB_ISOLATION_LEVEL", "SERIALIZABLE")

log = logging.getLogger(__name__)


def order_exists(order_id) -> ConflictError:
    return ConflictError(f"Order with id : {order_id} already exists!")


def order_item_exists(item_id) -> ConflictError:
    return ConflictError(f"Order item with id : {item_id} already exists!")


class PersistenceGateway(ABC):
    """
    Transaction-scoped access to books and order items.

    The four abstract operations are everything the stock reservation and total
    computation need. The remaining operations are used by the host workflow to
    store new orders and load existing ones.
    """

    @abstractmethod
    def get_book_stock(self, book_id: str) -> Optional[int]:
        """Returns the current stock of a book, or None if the book does not exist."""

    @abstractmethod
    def get_book_price(self, book_id: str) -> Optional[Decimal]:
        """Returns the current price of a book, or None if the book does not exist."""

    @abstractmethod
    def update_book_stock(self, book_id: str, new_stock: int, expected_stock: Optional[int] = None) -> bool:
        """
        Sets the stock of a book.

        Args:
            book_id (str): The book to update.
            new_stock (int): The new stock value.
            expected_stock (int): If given, the update only applies while the stored
                stock still equals this value (compare-and-swap).
        Returns:
            bool: True if exactly one row was updated.
        """

    @abstractmethod
    def list_order_items_by_parent(self, order_id: str) -> List[OrderItem]:
        """Returns all persisted items of an order, in insertion order, without derived values."""

    @abstractmethod
    def add_book(self, book: Book) -> None:
        ...

    @abstractmethod
    def insert_order(self, order: Order) -> None:
        """
        Stores the order header. Embedded items are stored via `insert_order_items`.
        Raises:
            ConflictError: If an order with the same id is already stored.
        """

    @abstractmethod
    def insert_order_items(self, items: List[OrderItem]) -> None:
        """Raises ConflictError if an item id is already stored, in this batch or before."""

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        """Returns the order header (without items), or None."""


class Database(ABC):
    """Factory for transaction-scoped gateways."""

    @abstractmethod
    def begin(self):
        """Context manager yielding a PersistenceGateway bound to one transaction."""


# --- In-Memory Store ---
class InMemoryGateway(PersistenceGateway):
    """
    Gateway over a private working copy of the in-memory tables.
    All returned models are copies: mutating them never touches stored state.
    """
    def __init__(self, books: Dict[str, Book], orders: Dict[str, Order], items: Dict[str, OrderItem]):
        self.books = books
        self.orders = orders
        self.items = items

    def get_book_stock(self, book_id: str) -> Optional[int]:
        book = self.books.get(book_id)
        return book.stock if book else None

    def get_book_price(self, book_id: str) -> Optional[Decimal]:
        book = self.books.get(book_id)
        return book.price if book else None

    def update_book_stock(self, book_id: str, new_stock: int, expected_stock: Optional[int] = None) -> bool:
        book = self.books.get(book_id)
        if book is None:
            return False
        if expected_stock is not None and book.stock != expected_stock:
            return False
        book.stock = new_stock
        return True

    def list_order_items_by_parent(self, order_id: str) -> List[OrderItem]:
        return [item.model_copy() for item in self.items.values() if item.parentId == order_id]

    def add_book(self, book: Book) -> None:
        self.books[book.id] = book.model_copy()

    def insert_order(self, order: Order) -> None:
        if order.id in self.orders:
            raise order_exists(order.id)
        self.orders[order.id] = order.model_copy(update={"items": [], "total": None})

    def insert_order_items(self, items: List[OrderItem]) -> None:
        for item in items:
            if item.id in self.items:
                raise order_item_exists(item.id)
            self.items[item.id] = item.model_copy(update={"netAmount": None})

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self.orders.get(order_id)
        return order.model_copy() if order else None


class InMemoryDatabase(Database):
    """
    Dict-backed database.

    Transactions are serialized by a lock and run against a deep copy of the tables,
    which replaces the stored tables only when the transaction body completes.
    """
    def __init__(self):
        self._books: Dict[str, Book] = {}
        self._orders: Dict[str, Order] = {}
        self._items: Dict[str, OrderItem] = {}
        self._lock = threading.Lock()

    @contextmanager
    def begin(self) -> Iterator[InMemoryGateway]:
        with self._lock:
            gateway = InMemoryGateway(
                copy.deepcopy(self._books),
                copy.deepcopy(self._orders),
                copy.deepcopy(self._items),
            )
            try:
                yield gateway
            except Exception:
                log.warning("Transaktion zurückgerollt (In-Memory).")
                raise
            self._books, self._orders, self._items = gateway.books, gateway.orders, gateway.items


# --- SQL Store (SQLAlchemy) ---
Base = declarative_base()


class BookRow(Base):
    __tablename__ = "books"
    id = Column(String(36), primary_key=True)
    title = Column(String(200))
    stock = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)


class OrderRow(Base):
    __tablename__ = "orders"
    id = Column(String(36), primary_key=True)


class OrderItemRow(Base):
    __tablename__ = "order_items"
    # Surrogate key keeps insertion order
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False)
    parent_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    # No FK: historical items may reference books that were removed since
    book_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)


class SqlGateway(PersistenceGateway):
    """Gateway bound to one SQLAlchemy session inside an open transaction."""

    def __init__(self, session: Session):
        self.session = session

    def get_book_stock(self, book_id: str) -> Optional[int]:
        return self.session.execute(
            select(BookRow.stock).where(BookRow.id == book_id)
        ).scalar_one_or_none()

    def get_book_price(self, book_id: str) -> Optional[Decimal]:
        return self.session.execute(
            select(BookRow.price).where(BookRow.id == book_id)
        ).scalar_one_or_none()

    def update_book_stock(self, book_id: str, new_stock: int, expected_stock: Optional[int] = None) -> bool:
        stmt = update(BookRow).where(BookRow.id == book_id)
        if expected_stock is not None:
            stmt = stmt.where(BookRow.stock == expected_stock)
        result = self.session.execute(
            stmt.values(stock=new_stock).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_order_items_by_parent(self, order_id: str) -> List[OrderItem]:
        rows = self.session.execute(
            select(OrderItemRow).where(OrderItemRow.parent_id == order_id).order_by(OrderItemRow.seq)
        ).scalars().all()
        return [
            OrderItem(id=row.id, parentId=row.parent_id, bookId=row.book_id, quantity=row.quantity)
            for row in rows
        ]

    def add_book(self, book: Book) -> None:
        self.session.add(BookRow(id=book.id, title=book.title, stock=book.stock, price=book.price))
        self.session.flush()

    def insert_order(self, order: Order) -> None:
        if self.session.get(OrderRow, order.id) is not None:
            raise order_exists(order.id)
        self.session.add(OrderRow(id=order.id))
        self.session.flush()

    def insert_order_items(self, items: List[OrderItem]) -> None:
        for item in items:
            existing = self.session.execute(
                select(OrderItemRow.seq).where(OrderItemRow.id == item.id)
            ).first()
            if existing is not None:
                raise order_item_exists(item.id)
            self.session.add(OrderItemRow(
                id=item.id, parent_id=item.parentId, book_id=item.bookId, quantity=item.quantity
            ))
            self.session.flush()

    def get_order(self, order_id: str) -> Optional[Order]:
        row = self.session.get(OrderRow, order_id)
        return Order(id=row.id) if row else None


class SqlDatabase(Database):
    """
    Relational database accessed through SQLAlchemy.
    Each `begin()` opens a session whose transaction commits on success and rolls back on error.
    """
    def __init__(self, engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def create_tables(self):
        Base.metadata.create_all(self.engine)

    @contextmanager
    def begin(self) -> Iterator[SqlGateway]:
        with self._sessions.begin() as session:
            try:
                yield SqlGateway(session)
            except Exception:
                log.warning("Transaktion zurückgerollt (SQL).")
                raise


def create_database(url: str = DATABASE_URL, isolation_level: str = ISOLATION_LEVEL, **engine_kwargs) -> SqlDatabase:
    """
    Creates the SQL database and its tables if they do not exist yet.

    Args:
        url (str): SQLAlchemy database URL. Defaults to ORDER_DB_URL.
        isolation_level (str): Transaction isolation level. Defaults to ORDER_DB_ISOLATION_LEVEL.
        **engine_kwargs: Passed through to `sqlalchemy.create_engine`.
    Returns:
        SqlDatabase: Ready-to-use database.
    """
    engine = create_engine(url, isolation_level=isolation_level, **engine_kwargs)
    database = SqlDatabase(engine)
    database.create_tables()
    log.info(f"Datenbank verbunden: {engine.url.render_as_string(hide_password=True)}")
    return database
