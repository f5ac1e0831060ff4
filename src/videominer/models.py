"""Domain models for videominer.

JSON bodies use camelCase keys (``createdTime``, ``releaseTime``...) while
Python code works with snake_case attributes. Either spelling is accepted
on input.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class VideoMinerModel(BaseModel):
    """Base model shared by every videominer entity."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Caption(VideoMinerModel):
    """A caption track attached to a video."""

    id: str | None = None
    name: str | None = None
    language: str | None = None


class Comment(VideoMinerModel):
    """A user comment left on a video."""

    id: str | None = None
    text: str | None = None
    created_on: str | None = None
    author: str | None = None


class Video(VideoMinerModel):
    """A mined video, owning its comments and captions."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    release_time: str | None = None
    comments: list[Comment] = Field(default_factory=list)
    captions: list[Caption] = Field(default_factory=list)
    comments_enabled: bool = True  # False when the uploader turned comments off


class Channel(VideoMinerModel):
    """A channel, owning an ordered list of videos."""

    id: str | None = None
    name: str
    description: str | None = None
    created_time: str
    videos: list[Video] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Channel name cannot be empty")
        return value

    @field_validator("created_time")
    @classmethod
    def _created_time_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Channel creation time cannot be empty")
        return value
