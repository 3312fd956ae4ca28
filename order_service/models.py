"""
models.py — Data Models for Bookstore Orders

This module defines the data structures exchanged between the order service and its
persistence layer. It uses Pydantic models to ensure type safety and validation of
incoming data.

Models:
    - Book: Catalog entry with the stock and price fields the order service needs.
    - OrderItem: A single line item of an order.
    - Order: An order with its embedded line items.

Derived values (`netAmount`, `total`) are never persisted. They are recomputed from the
current book prices on every create and read.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional


class Book(BaseModel):
    """
    Represents a book as seen by the order service.

    Attributes:
        id (str): Unique book identifier.
        title (str): Optional display title.
        stock (int): Number of copies available. Never negative.
        price (Decimal): Current unit price. Never negative, at most two decimal places.
    """
    id: str
    title: Optional[str] = None
    stock: int = Field(0, ge=0)
    # Stored as NUMERIC(10, 2): finer prices are rejected rather than rounded
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)


class OrderItem(BaseModel):
    """
    Represents a single line item of an order.

    `quantity` is not constrained here: a non-positive quantity is a business
    rule violation reported by the stock reservation, not a payload parsing error.

    Attributes:
        id (str): Line item identifier. Generated on create when missing.
        parentId (str): Identifier of the owning order.
        bookId (str): Identifier of the ordered book.
        quantity (int): Number of copies ordered.
        netAmount (Decimal): Derived, price x quantity. Not persisted.
    """
    id: Optional[str] = None
    parentId: Optional[str] = None
    bookId: Optional[str] = None
    quantity: int = 0
    netAmount: Optional[Decimal] = None


class Order(BaseModel):
    """
    Represents an order and the line items submitted with it.

    Attributes:
        id (str): Order identifier. Generated on create when missing.
        items (List[OrderItem]): Line items carried in the payload (may be empty on read).
        total (Decimal): Derived, sum of the net amounts of all persisted items. Not persisted.
    """
    id: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    total: Optional[Decimal] = None
