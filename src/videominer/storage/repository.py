"""Abstract store contracts for videominer entities."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from videominer.models import Caption, Channel, Comment, Video
from videominer.pagination import Page, PageRequest

M = TypeVar("M")


class Repository(ABC, Generic[M]):
    """Abstract base class defining the id-keyed storage contract.

    Concrete storage implementations must implement this interface so the
    service layer depends on abstractions, not on a particular database.
    """

    @abstractmethod
    def get(self, entity_id: str) -> M | None:
        """Retrieve an entity by ID. Returns None if not found."""

    @abstractmethod
    def exists(self, entity_id: str) -> bool:
        """Check whether an entity with the given ID is in storage."""

    @abstractmethod
    def find_all(self, request: PageRequest) -> Page[M]:
        """Return one page of all stored entities."""

    @abstractmethod
    def save(self, entity: M) -> M:
        """Persist an entity. Upserts if the ID already exists."""

    @abstractmethod
    def delete(self, entity_id: str) -> None:
        """Remove an entity and everything it owns. No-op if absent."""


class NamedRepository(Repository[M]):
    """Store whose entities can be filtered by their ``name`` field."""

    @abstractmethod
    def find_by_name(self, name: str, request: PageRequest) -> Page[M]:
        """Return one page of entities whose name equals ``name``."""

    @abstractmethod
    def find_by_name_containing(self, text: str, request: PageRequest) -> Page[M]:
        """Return one page of entities whose name contains ``text`` (case-sensitive)."""


class ChannelRepository(NamedRepository[Channel]):
    """Channel storage contract."""


class VideoRepository(NamedRepository[Video]):
    """Video storage contract."""


class CommentRepository(Repository[Comment]):
    """Comment storage contract."""

    @abstractmethod
    def comments_allowed(self, comment_id: str) -> bool:
        """Whether the video owning this comment accepts comments.

        Comments without an owning video are always allowed.
        """


class CaptionRepository(Repository[Caption]):
    """Caption storage contract."""
