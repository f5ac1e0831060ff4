# tests/conftest.py
"""Shared fixtures for videominer tests."""

import pytest
from fastapi.testclient import TestClient

from videominer.models import Caption, Channel, Comment, Video
from videominer.server import create_app
from videominer.service import Services
from videominer.storage.sqlite import (
    SQLiteCaptionRepository,
    SQLiteChannelRepository,
    SQLiteCommentRepository,
    SQLiteDatabase,
    SQLiteVideoRepository,
)


@pytest.fixture
def sample_comment():
    return Comment(id="c1", text="Great explanation!", created_on="2024-05-12T10:00:00Z", author="alice")


@pytest.fixture
def sample_caption():
    return Caption(id="cap1", name="English (auto-generated)", language="en")


@pytest.fixture
def sample_video(sample_comment, sample_caption):
    """Video owning one comment and one caption."""
    return Video(
        id="v1",
        name="Intro to Machine Learning",
        description="A beginner's guide to ML concepts.",
        release_time="2024-05-10T08:00:00Z",
        comments=[
            sample_comment,
            Comment(id="c2", text="Thanks!", created_on="2024-05-12T11:00:00Z", author="bob"),
        ],
        captions=[sample_caption],
    )


@pytest.fixture
def sample_channel(sample_video):
    """Channel owning sample_video."""
    return Channel(
        id="ch1",
        name="TechChannel",
        description="Tech tutorials",
        created_time="2024-05-12",
        videos=[sample_video],
    )


@pytest.fixture
def database():
    """SQLiteDatabase backed by an in-memory database."""
    db = SQLiteDatabase(":memory:")
    yield db
    db.close()


@pytest.fixture
def channel_repo(database):
    return SQLiteChannelRepository(database)


@pytest.fixture
def video_repo(database):
    return SQLiteVideoRepository(database)


@pytest.fixture
def comment_repo(database):
    return SQLiteCommentRepository(database)


@pytest.fixture
def caption_repo(database):
    return SQLiteCaptionRepository(database)


@pytest.fixture
def services(database):
    """All four services wired to the in-memory database."""
    return Services.from_database(database)


@pytest.fixture
def client(services):
    """HTTP client against an app serving the in-memory services."""
    with TestClient(create_app(services)) as test_client:
        yield test_client
