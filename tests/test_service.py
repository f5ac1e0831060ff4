# tests/test_service.py
"""Tests for the resource services."""

from unittest.mock import MagicMock

import pytest

from videominer.config import settings
from videominer.models import Caption, Channel, Comment, Video
from videominer.pagination import InvalidPageRequestError, Page
from videominer.service import (
    CaptionNotFoundError,
    CaptionService,
    ChannelNotFoundError,
    ChannelService,
    CommentForbiddenError,
    CommentNotFoundError,
    CommentService,
    InvalidEntityError,
    LookupOutcome,
    ResourceNotFoundError,
    VideoNotFoundError,
    VideoService,
)
from videominer.storage.repository import ChannelRepository, CommentRepository, VideoRepository


@pytest.fixture
def mock_channel_repo():
    """ChannelRepository double for verifying which store calls are made."""
    repo = MagicMock(spec=ChannelRepository)
    repo.find_all.return_value = Page(content=[])
    repo.find_by_name.return_value = Page(content=[])
    repo.find_by_name_containing.return_value = Page(content=[])
    return repo


class TestCreateAndGet:
    def test_create_channel_then_get(self, services, sample_channel):
        created = services.channels.create(sample_channel)
        assert created == sample_channel
        assert services.channels.get("ch1") == sample_channel

    def test_get_channel_not_found(self, services):
        with pytest.raises(ChannelNotFoundError):
            services.channels.get("nonexistent")

    def test_not_found_errors_share_base(self, services):
        for svc in (services.channels, services.videos, services.comments, services.captions):
            with pytest.raises(ResourceNotFoundError):
                svc.get("nonexistent")

    def test_create_overwrites_existing_id(self, services):
        services.captions.create(Caption(id="cap1", name="English", language="en"))
        services.captions.create(Caption(id="cap1", name="Spanish", language="es"))
        assert services.captions.get("cap1").language == "es"
        assert len(services.captions.find_all()) == 1

    def test_create_without_id(self, services):
        with pytest.raises(InvalidEntityError):
            services.comments.create(Comment(text="orphan"))

    def test_create_with_nested_missing_id(self, services):
        channel = Channel(id="1", name="A", created_time="2024-01-01", videos=[Video(name="no id")])
        with pytest.raises(InvalidEntityError, match="Video id"):
            services.channels.create(channel)
        assert not services.channels._repo.exists("1")

    def test_get_video_and_caption(self, services, sample_video):
        services.videos.create(sample_video)
        assert services.videos.get("v1") == sample_video
        assert services.captions.get("cap1").language == "en"
        with pytest.raises(CaptionNotFoundError):
            services.captions.get("missing")


class TestUpdate:
    def test_update_channel_replaces_record(self, services):
        services.channels.create(Channel(id="1", name="A", created_time="2024-01-01"))
        payload = Channel(name="B", description="d", created_time="2024-01-02", videos=[])
        services.channels.update("1", payload)
        updated = services.channels.get("1")
        assert updated.id == "1"
        assert updated.name == "B"
        assert updated.description == "d"
        assert updated.created_time == "2024-01-02"

    def test_update_uses_path_id(self, services):
        services.comments.create(Comment(id="c1", text="old"))
        services.comments.update("c1", Comment(id="other", text="new", author="bob"))
        assert services.comments.get("c1").text == "new"
        assert services.comments.get("c1").author == "bob"
        with pytest.raises(CommentNotFoundError):
            services.comments.get("other")

    def test_update_drops_omitted_fields(self, services, sample_comment):
        services.comments.create(sample_comment)
        services.comments.update("c1", Comment(text="edited"))
        updated = services.comments.get("c1")
        assert updated.text == "edited"
        assert updated.author is None
        assert updated.created_on is None

    def test_update_video_replaces_children(self, services, sample_video):
        services.videos.create(sample_video)
        payload = Video(name="New", captions=[Caption(id="cap2", language="fr")])
        services.videos.update("v1", payload)
        video = services.videos.get("v1")
        assert video.name == "New"
        assert video.description is None
        assert video.comments == []
        assert [c.id for c in video.captions] == ["cap2"]

    def test_update_caption(self, services, sample_caption):
        services.captions.create(sample_caption)
        services.captions.update("cap1", Caption(id="x", name="German", language="de"))
        assert services.captions.get("cap1") == Caption(id="cap1", name="German", language="de")

    def test_update_not_found_never_writes(self, mock_channel_repo):
        mock_channel_repo.exists.return_value = False
        svc = ChannelService(mock_channel_repo)
        with pytest.raises(ChannelNotFoundError):
            svc.update("1", Channel(name="A", created_time="2024-01-01"))
        mock_channel_repo.exists.assert_called_once_with("1")
        mock_channel_repo.save.assert_not_called()

    def test_update_saves_whitelisted_fields(self, mock_channel_repo):
        mock_channel_repo.exists.return_value = True
        svc = ChannelService(mock_channel_repo)
        svc.update("1", Channel(id="999", name="A", description="d", created_time="t"))
        saved = mock_channel_repo.save.call_args.args[0]
        assert saved == Channel(id="1", name="A", description="d", created_time="t", videos=[])


class TestDelete:
    def test_delete_then_get_fails(self, services, sample_channel):
        services.channels.create(sample_channel)
        services.channels.delete("ch1")
        with pytest.raises(ChannelNotFoundError):
            services.channels.get("ch1")
        with pytest.raises(VideoNotFoundError):
            services.videos.get("v1")

    def test_delete_not_found(self, services):
        with pytest.raises(VideoNotFoundError):
            services.videos.delete("unknown-id")

    def test_delete_not_found_never_deletes(self):
        repo = MagicMock(spec=VideoRepository)
        repo.exists.return_value = False
        with pytest.raises(VideoNotFoundError):
            VideoService(repo).delete("v1")
        repo.delete.assert_not_called()


class TestNamedListing:
    @pytest.fixture(autouse=True)
    def _channels(self, services):
        for channel_id, name in [("1", "Beta"), ("2", "Alpha"), ("3", "Gamma"), ("4", "Alphabet")]:
            services.channels.create(Channel(id=channel_id, name=name, created_time="2024-01-01"))

    def test_default_listing(self, services):
        assert [c.id for c in services.channels.find_all()] == ["1", "2", "3", "4"]

    def test_order_ascending(self, services):
        names = [c.name for c in services.channels.find_all(order="name")]
        assert names == sorted(names)

    def test_order_descending(self, services):
        names = [c.name for c in services.channels.find_all(order="-name")]
        assert names == ["Gamma", "Beta", "Alphabet", "Alpha"]

    def test_name_exact(self, services):
        assert [c.id for c in services.channels.find_all(name="Alpha")] == ["2"]

    def test_containing(self, services):
        assert [c.id for c in services.channels.find_all(containing="Alpha")] == ["2", "4"]

    def test_name_wins_over_containing(self, services):
        result = services.channels.find_all(name="Beta", containing="Alpha")
        assert [c.id for c in result] == ["1"]

    def test_sort_applies_to_filtered_query(self, services):
        result = services.channels.find_all(containing="Alpha", order="-name")
        assert [c.name for c in result] == ["Alphabet", "Alpha"]

    def test_paging(self, services):
        assert [c.id for c in services.channels.find_all(page=1, size=3)] == ["4"]

    def test_empty_page_is_not_found(self, services):
        with pytest.raises(ChannelNotFoundError):
            services.channels.find_all(page=10)

    def test_no_match_is_not_found(self, services):
        with pytest.raises(ChannelNotFoundError):
            services.channels.find_all(name="Delta")

    def test_invalid_order(self, services):
        with pytest.raises(InvalidPageRequestError):
            services.channels.find_all(order="-nope")

    def test_video_empty_listing(self, services):
        with pytest.raises(VideoNotFoundError):
            services.videos.find_all()

    def test_query_variant_selection(self, mock_channel_repo):
        mock_channel_repo.find_by_name.return_value = Page(content=[Channel(id="1", name="A", created_time="t")])
        svc = ChannelService(mock_channel_repo)
        svc.find_all(name="A", containing="B", order="-name")
        request = mock_channel_repo.find_by_name.call_args.args[1]
        assert request.sort.field == "name"
        assert request.sort.descending is True
        mock_channel_repo.find_by_name_containing.assert_not_called()
        mock_channel_repo.find_all.assert_not_called()


class TestPlainListing:
    def test_comments_empty_is_not_an_error(self, services):
        assert services.comments.find_all() == []

    def test_default_size_from_settings(self, services, monkeypatch):
        monkeypatch.setattr(settings, "default_page_size", 3)
        for i in range(5):
            services.comments.create(Comment(id=f"c{i}"))
        assert [c.id for c in services.comments.find_all()] == ["c0", "c1", "c2"]
        assert [c.id for c in services.comments.find_all(page=1)] == ["c3", "c4"]

    def test_explicit_size_wins_over_settings(self, services, monkeypatch):
        monkeypatch.setattr(settings, "default_page_size", 3)
        for i in range(5):
            services.comments.create(Comment(id=f"c{i}"))
        assert len(services.comments.find_all(size=5)) == 5

    def test_oversized_page_rejected(self, services):
        with pytest.raises(InvalidPageRequestError):
            services.comments.find_all(page=2**62)

    def test_captions_ignore_filters(self, services):
        services.captions.create(Caption(id="b", name="Beta"))
        services.captions.create(Caption(id="a", name="Alpha"))
        result = services.captions.find_all(name="Zeta", order="-name", containing="x")
        assert [c.id for c in result] == ["b", "a"]

    def test_comments_paged(self, services):
        for i in range(12):
            services.comments.create(Comment(id=f"c{i:02d}"))
        assert len(services.comments.find_all()) == 10
        assert [c.id for c in services.comments.find_all(page=1)] == ["c10", "c11"]


class TestCommentLookup:
    def test_found(self, services, sample_video):
        services.videos.create(sample_video)
        result = services.comments.lookup("c1")
        assert result.outcome is LookupOutcome.FOUND
        assert result.comment.text == "Great explanation!"

    def test_not_found(self, services):
        result = services.comments.lookup("missing")
        assert result.outcome is LookupOutcome.NOT_FOUND
        assert result.comment is None

    def test_forbidden_when_video_disables_comments(self, services, sample_video):
        sample_video.comments_enabled = False
        services.videos.create(sample_video)
        assert services.comments.lookup("c1").outcome is LookupOutcome.FORBIDDEN
        with pytest.raises(CommentForbiddenError, match="turned off"):
            services.comments.get("c1")

    def test_missing_comment_skips_video_check(self):
        repo = MagicMock(spec=CommentRepository)
        repo.get.return_value = None
        with pytest.raises(CommentNotFoundError):
            CommentService(repo).get("c1")
        repo.comments_allowed.assert_not_called()


class TestNestedListing:
    def test_list_comments(self, services, sample_video):
        services.videos.create(sample_video)
        assert [c.id for c in services.videos.list_comments("v1")] == ["c1", "c2"]

    def test_list_captions(self, services, sample_video):
        services.videos.create(sample_video)
        assert services.videos.list_captions("v1") == sample_video.captions

    def test_missing_video(self, services):
        with pytest.raises(VideoNotFoundError):
            services.videos.list_comments("missing")
        with pytest.raises(VideoNotFoundError):
            services.videos.list_captions("missing")

    def test_comments_disabled(self, services, sample_video):
        sample_video.comments_enabled = False
        services.videos.create(sample_video)
        with pytest.raises(CommentForbiddenError):
            services.videos.list_comments("v1")
        assert len(services.videos.list_captions("v1")) == 1


class TestCaptionService:
    def test_delete_not_found(self, services):
        with pytest.raises(CaptionNotFoundError):
            services.captions.delete("missing")

    def test_constructed_with_store(self, caption_repo, sample_caption):
        svc = CaptionService(caption_repo)
        svc.create(sample_caption)
        svc.delete("cap1")
        assert caption_repo.get("cap1") is None
