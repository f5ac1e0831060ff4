"""Paging and sorting primitives shared by stores and services."""

from dataclasses import dataclass, field
from math import ceil
from typing import Generic, TypeVar

T = TypeVar("T")


class InvalidPageRequestError(ValueError):
    """Raised when page coordinates or the sort order cannot be honoured."""


@dataclass(frozen=True)
class Sort:
    """Single-field ordering."""

    field: str
    descending: bool = False

    @classmethod
    def parse(cls, order: str | None) -> "Sort | None":
        """Parse an ``order`` query value.

        ``"name"`` sorts ascending, ``"-name"`` descending and ``None``
        means unsorted.

        Raises:
            InvalidPageRequestError: If no field name is given.
        """
        if order is None:
            return None
        descending = order.startswith("-")
        name = order[1:] if descending else order
        if not name:
            raise InvalidPageRequestError(f"Invalid sort order: {order!r}")
        return cls(field=name, descending=descending)


# Largest value SQLite can bind as an INTEGER
MAX_SQL_INTEGER = 2**63 - 1


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page coordinates with an optional sort."""

    page: int = 0
    size: int = 10
    sort: Sort | None = None

    def __post_init__(self) -> None:
        if self.page < 0:
            raise InvalidPageRequestError("Page index must not be less than zero")
        if self.size < 1:
            raise InvalidPageRequestError("Page size must not be less than one")
        if self.size > MAX_SQL_INTEGER or self.offset > MAX_SQL_INTEGER:
            raise InvalidPageRequestError("Page index or size is too large")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    """One slice of an ordered result set."""

    content: list[T] = field(default_factory=list)
    number: int = 0
    size: int = 10
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        return ceil(self.total_elements / self.size) if self.size else 0

    def is_empty(self) -> bool:
        return not self.content
