"""
errors.py — Error Taxonomy of the Order Service

Every business rule violation is raised as a subclass of `OrderError`. The error carries
an HTTP-style status code so that whatever transport hosts the service can map it
to a response without knowing the individual rules.

    NotFoundError       404  book id missing or unknown, parent order unknown
    NotAcceptableError  406  line item quantity <= 0
    BadRequestError     400  not enough books on stock
    ConflictError       409  order or line item id already stored
"""

from typing import Optional

NOT_FOUND = 404
NOT_ACCEPTABLE = 406
BAD_REQUEST = 400
CONFLICT = 409


class OrderError(Exception):
    """Base class for all order rule violations."""
    status = 500
    kind = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.kind} ({self.status}): {self.message}"


class NotFoundError(OrderError):
    """The referenced book or order id is blank or does not resolve."""
    status = NOT_FOUND
    kind = "NotFound"


class NotAcceptableError(OrderError):
    """A line item was submitted with a quantity of zero or less."""
    status = NOT_ACCEPTABLE
    kind = "NotAcceptable"


class BadRequestError(OrderError):
    """The requested quantity exceeds the available stock."""
    status = BAD_REQUEST
    kind = "BadRequest"


class ConflictError(OrderError):
    """An order or line item with the same id is already stored."""
    status = CONFLICT
    kind = "Conflict"


def book_not_found(book_id) -> NotFoundError:
    return NotFoundError(f"Book with id : {book_id} not found!")


def order_not_found(order_id) -> NotFoundError:
    return NotFoundError(f"Order with id : {order_id} not found!")


def has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())
