"""Core business logic for videominer.

One service per resource, all built on the same template: paged listing,
lookup by id, create, replace-update and delete. Stores are injected via
the constructor so the HTTP layer, the CLI and the tests can share them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from videominer.config import settings
from videominer.models import Caption, Channel, Comment, Video
from videominer.pagination import Page, PageRequest, Sort
from videominer.storage.repository import (
    CaptionRepository,
    ChannelRepository,
    CommentRepository,
    NamedRepository,
    Repository,
    VideoRepository,
)
from videominer.storage.sqlite import (
    SQLiteCaptionRepository,
    SQLiteChannelRepository,
    SQLiteCommentRepository,
    SQLiteDatabase,
    SQLiteVideoRepository,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", Channel, Video, Comment, Caption)

DEFAULT_PAGE = 0


class VideoMinerError(Exception):
    """Base class for errors surfaced to API clients."""


class ResourceNotFoundError(VideoMinerError):
    """Raised when a requested resource is not in storage."""


class ChannelNotFoundError(ResourceNotFoundError):
    """Raised when a channel lookup or listing comes back empty."""


class VideoNotFoundError(ResourceNotFoundError):
    """Raised when a video lookup or listing comes back empty."""


class CommentNotFoundError(ResourceNotFoundError):
    """Raised when a requested comment is not in storage."""


class CaptionNotFoundError(ResourceNotFoundError):
    """Raised when a requested caption is not in storage."""


class CommentForbiddenError(VideoMinerError):
    """Raised when comments are read from a video that has them turned off."""

    def __init__(self, message: str = "Video comments are turned off") -> None:
        super().__init__(message)


class InvalidEntityError(VideoMinerError):
    """Raised when a payload cannot be persisted as given."""


class LookupOutcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class CommentLookup:
    """Result of a comment lookup that tells "absent" apart from "hidden"."""

    outcome: LookupOutcome
    comment: Comment | None = None
    reason: str | None = None


def _require_id(entity: Channel | Video | Comment | Caption, kind: str) -> None:
    if not entity.id:
        raise InvalidEntityError(f"{kind} id must not be empty")


def _page_request(page: int, size: int | None, sort: Sort | None = None) -> PageRequest:
    if size is None:
        size = settings.default_page_size
    return PageRequest(page=page, size=size, sort=sort)


def _validate_video(video: Video) -> None:
    _require_id(video, "Video")
    for comment in video.comments:
        _require_id(comment, "Comment")
    for caption in video.captions:
        _require_id(caption, "Caption")


class _ResourceService(Generic[M]):
    """Template shared by the four resource services.

    Subclasses name the resource, its not-found error and how a
    replace-update rebuilds a record from the path id and the body.
    """

    _kind: str
    _not_found: type[ResourceNotFoundError]

    def __init__(self, repository: Repository[M]) -> None:
        self._repo = repository

    def find_all(
        self,
        page: int = DEFAULT_PAGE,
        size: int | None = None,
        name: str | None = None,
        order: str | None = None,
        containing: str | None = None,
    ) -> list[M]:
        """Return one page of the resource.

        Only ``page`` and ``size`` are honoured here; ``name``, ``order``
        and ``containing`` are accepted for a uniform signature. An empty
        page is returned as an empty list.
        """
        return self._repo.find_all(_page_request(page, size)).content

    def get(self, entity_id: str) -> M:
        """Look up a single record.

        Raises:
            ResourceNotFoundError: The resource-specific subclass, if absent.
        """
        entity = self._repo.get(entity_id)
        if entity is None:
            logger.debug("%s not found: %s", self._kind, entity_id)
            raise self._not_found(f"{self._kind} not found: {entity_id}")
        return entity

    def create(self, entity: M) -> M:
        """Persist ``entity`` as given. An existing id is overwritten.

        Raises:
            InvalidEntityError: If the entity (or anything it owns) has no id.
        """
        self._validate(entity)
        saved = self._repo.save(entity)
        logger.info("%s created: %s", self._kind, saved.id)
        return saved

    def update(self, entity_id: str, payload: M) -> None:
        """Replace the record stored under ``entity_id``.

        The new record is built from the path id plus a fixed set of body
        fields; anything else in the body (including its id) is dropped.

        Raises:
            ResourceNotFoundError: If nothing is stored under ``entity_id``.
            InvalidEntityError: If an owned entity in the body has no id.
        """
        if not self._repo.exists(entity_id):
            raise self._not_found(f"{self._kind} not found: {entity_id}")
        replacement = self._replace(entity_id, payload)
        self._validate(replacement)
        self._repo.save(replacement)
        logger.info("%s replaced: %s", self._kind, entity_id)

    def delete(self, entity_id: str) -> None:
        """Remove a record and everything it owns.

        Raises:
            ResourceNotFoundError: If nothing is stored under ``entity_id``.
        """
        if not self._repo.exists(entity_id):
            raise self._not_found(f"{self._kind} not found: {entity_id}")
        self._repo.delete(entity_id)
        logger.info("%s deleted: %s", self._kind, entity_id)

    def _replace(self, entity_id: str, payload: M) -> M:
        raise NotImplementedError

    def _validate(self, entity: M) -> None:
        _require_id(entity, self._kind)


class _NamedResourceService(_ResourceService[M]):
    """Listing with sorting, name filtering and a not-found on empty pages."""

    _repo: NamedRepository[M]

    def find_all(
        self,
        page: int = DEFAULT_PAGE,
        size: int | None = None,
        name: str | None = None,
        order: str | None = None,
        containing: str | None = None,
    ) -> list[M]:
        """Return one page, optionally filtered and sorted.

        Args:
            page: Zero-based page index.
            size: Page size. Defaults to settings.default_page_size.
            name: Exact name match. Wins over ``containing``.
            order: Field to sort by, prefixed with ``-`` for descending.
            containing: Case-sensitive substring of the name.

        Raises:
            ResourceNotFoundError: If the resulting page is empty.
            InvalidPageRequestError: On a bad page, size or sort field.
        """
        request = _page_request(page, size, Sort.parse(order))
        result: Page[M]
        if name is not None:
            result = self._repo.find_by_name(name, request)
        elif containing is not None:
            result = self._repo.find_by_name_containing(containing, request)
        else:
            result = self._repo.find_all(request)

        if result.is_empty():
            raise self._not_found(f"No {self._kind.lower()}s found")
        return result.content


class ChannelService(_NamedResourceService[Channel]):
    _kind = "Channel"
    _not_found = ChannelNotFoundError

    def __init__(self, repository: ChannelRepository) -> None:
        super().__init__(repository)

    def _replace(self, entity_id: str, payload: Channel) -> Channel:
        return Channel(
            id=entity_id,
            name=payload.name,
            videos=payload.videos,
            description=payload.description,
            created_time=payload.created_time,
        )

    def _validate(self, channel: Channel) -> None:
        _require_id(channel, "Channel")
        for video in channel.videos:
            _validate_video(video)


class VideoService(_NamedResourceService[Video]):
    _kind = "Video"
    _not_found = VideoNotFoundError

    def __init__(self, repository: VideoRepository) -> None:
        super().__init__(repository)

    def list_comments(self, video_id: str) -> list[Comment]:
        """Return the comments owned by a video, in order.

        Raises:
            VideoNotFoundError: If the video is not in storage.
            CommentForbiddenError: If the video has comments turned off.
        """
        video = self.get(video_id)
        if not video.comments_enabled:
            raise CommentForbiddenError()
        return video.comments

    def list_captions(self, video_id: str) -> list[Caption]:
        """Return the captions owned by a video, in order.

        Raises:
            VideoNotFoundError: If the video is not in storage.
        """
        return self.get(video_id).captions

    def _replace(self, entity_id: str, payload: Video) -> Video:
        return Video(
            id=entity_id,
            name=payload.name,
            description=payload.description,
            release_time=payload.release_time,
            comments=payload.comments,
            captions=payload.captions,
            comments_enabled=payload.comments_enabled,
        )

    def _validate(self, video: Video) -> None:
        _validate_video(video)


class CommentService(_ResourceService[Comment]):
    _kind = "Comment"
    _not_found = CommentNotFoundError

    def __init__(self, repository: CommentRepository) -> None:
        super().__init__(repository)

    def lookup(self, comment_id: str) -> CommentLookup:
        """Classify a comment as found, missing, or hidden by its video."""
        comment = self._repo.get(comment_id)
        if comment is None:
            return CommentLookup(LookupOutcome.NOT_FOUND, reason=f"Comment not found: {comment_id}")
        if not self._repo.comments_allowed(comment_id):
            return CommentLookup(LookupOutcome.FORBIDDEN, reason="Video comments are turned off")
        return CommentLookup(LookupOutcome.FOUND, comment=comment)

    def get(self, comment_id: str) -> Comment:
        """Look up a single comment.

        Raises:
            CommentNotFoundError: If the comment is not in storage.
            CommentForbiddenError: If its video has comments turned off.
        """
        result = self.lookup(comment_id)
        if result.outcome is LookupOutcome.NOT_FOUND:
            logger.debug("Comment not found: %s", comment_id)
            raise CommentNotFoundError(result.reason)
        if result.outcome is LookupOutcome.FORBIDDEN:
            logger.debug("Comment hidden, video comments off: %s", comment_id)
            raise CommentForbiddenError(result.reason)
        return result.comment

    def _replace(self, entity_id: str, payload: Comment) -> Comment:
        return Comment(
            id=entity_id,
            text=payload.text,
            created_on=payload.created_on,
            author=payload.author,
        )


class CaptionService(_ResourceService[Caption]):
    _kind = "Caption"
    _not_found = CaptionNotFoundError

    def __init__(self, repository: CaptionRepository) -> None:
        super().__init__(repository)

    def _replace(self, entity_id: str, payload: Caption) -> Caption:
        return Caption(id=entity_id, name=payload.name, language=payload.language)


@dataclass
class Services:
    """The four resource services, wired to the same storage."""

    channels: ChannelService
    videos: VideoService
    comments: CommentService
    captions: CaptionService

    @classmethod
    def from_database(cls, database: SQLiteDatabase) -> "Services":
        return cls(
            channels=ChannelService(SQLiteChannelRepository(database)),
            videos=VideoService(SQLiteVideoRepository(database)),
            comments=CommentService(SQLiteCommentRepository(database)),
            captions=CaptionService(SQLiteCaptionRepository(database)),
        )
