"""Pytest configuration and fixtures"""
import os
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.pool import StaticPool

# Keep test runs from writing a log file into the working directory
os.environ.setdefault("ORDER_LOG_FILE", "")

from order_service.models import Book
from order_service.persistence import BookRow, InMemoryDatabase, InMemoryGateway, create_database


SAMPLE_BOOKS = [
    Book(id="book-a", title="Wuthering Heights", stock=10, price=Decimal("9.99")),
    Book(id="book-b", title="Jane Eyre", stock=5, price=Decimal("20.00")),
    Book(id="book-c", title="The Raven", stock=0, price=Decimal("5.50")),
    Book(id="book-d", title="Eleonora", stock=100, price=Decimal("10.00")),
]


def _seed(database):
    with database.begin() as tx:
        for book in SAMPLE_BOOKS:
            tx.add_book(book)
    return database


@pytest.fixture
def memory_db():
    """In-memory database seeded with sample books"""
    return _seed(InMemoryDatabase())


@pytest.fixture
def sql_db():
    """SQLite in-memory database seeded with sample books"""
    database = create_database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield _seed(database)
    database.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def database(request):
    """Runs a test against both database adapters"""
    return request.getfixturevalue(f"{request.param}_db")


def stock_of(database, book_id):
    with database.begin() as tx:
        return tx.get_book_stock(book_id)


def set_price(database, book_id, price):
    """Changes a book price outside of the order service (catalog maintenance)."""
    with database.begin() as tx:
        if isinstance(tx, InMemoryGateway):
            tx.books[book_id].price = Decimal(price)
        else:
            tx.session.execute(update(BookRow).where(BookRow.id == book_id).values(price=Decimal(price)))
