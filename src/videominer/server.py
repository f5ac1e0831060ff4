"""FastAPI server — thin wrapper exposing the resource services as REST endpoints."""

import logging
import threading
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from videominer.config import settings
from videominer.models import Caption, Channel, Comment, Video
from videominer.pagination import InvalidPageRequestError
from videominer.service import (
    CaptionService,
    ChannelService,
    CommentForbiddenError,
    CommentService,
    InvalidEntityError,
    ResourceNotFoundError,
    Services,
    VideoService,
)
from videominer.storage.sqlite import SQLiteDatabase

logger = logging.getLogger(__name__)

API_PREFIX = "/videominer"

NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"description": "Resource not found"}}
BAD_REQUEST = {status.HTTP_400_BAD_REQUEST: {"description": "Invalid request"}}

_services_lock = threading.Lock()


def get_services(request: Request) -> Services:
    """Return the app's services, building the default SQLite-backed set on first use."""
    state = request.app.state
    if state.services is None:
        with _services_lock:
            if state.services is None:
                state.database = SQLiteDatabase()
                state.services = Services.from_database(state.database)
    return state.services


def channel_service(services: Services = Depends(get_services)) -> ChannelService:
    return services.channels


def video_service(services: Services = Depends(get_services)) -> VideoService:
    return services.videos


def comment_service(services: Services = Depends(get_services)) -> CommentService:
    return services.comments


def caption_service(services: Services = Depends(get_services)) -> CaptionService:
    return services.captions


class ListParams:
    """Query parameters shared by every list endpoint."""

    def __init__(
        self,
        page: int = Query(0, ge=0, description="Zero-based page number."),
        size: int = Query(settings.default_page_size, ge=1, description="Page size."),
        name: str | None = Query(None, description="Exact name to match."),
        order: str | None = Query(
            None, description="Field to sort by; prefix with '-' for descending order."
        ),
        containing: str | None = Query(
            None, description="Text the name must contain (case-sensitive)."
        ),
    ) -> None:
        self.page = page
        self.size = size
        self.name = name
        self.order = order
        self.containing = containing

    def as_kwargs(self) -> dict:
        return {
            "page": self.page,
            "size": self.size,
            "name": self.name,
            "order": self.order,
            "containing": self.containing,
        }


# Channels

channels = APIRouter(prefix=f"{API_PREFIX}/channels", tags=["channels"])


@channels.get(
    "",
    response_model=list[Channel],
    summary="List channels",
    description="Paged channel listing, filterable by exact name or name substring "
    "and sortable by any channel field.",
    responses=NOT_FOUND,
)
def list_channels(
    params: ListParams = Depends(), svc: ChannelService = Depends(channel_service)
) -> list[Channel]:
    return svc.find_all(**params.as_kwargs())


@channels.get("/{id}", response_model=Channel, summary="Get a channel", responses=NOT_FOUND)
def get_channel(
    id: str = Path(..., description="ID of the channel."),
    svc: ChannelService = Depends(channel_service),
) -> Channel:
    return svc.get(id)


@channels.post(
    "",
    response_model=Channel,
    status_code=status.HTTP_201_CREATED,
    summary="Create a channel",
    responses=BAD_REQUEST,
)
def create_channel(channel: Channel, svc: ChannelService = Depends(channel_service)) -> Channel:
    return svc.create(channel)


@channels.put(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Replace a channel",
    description="Rebuilds the channel from the path id and the body's name, "
    "description, createdTime and videos. Fields left out of the body are lost.",
    responses={**NOT_FOUND, **BAD_REQUEST},
)
def update_channel(
    channel: Channel,
    id: str = Path(..., description="ID of the channel to replace."),
    svc: ChannelService = Depends(channel_service),
) -> None:
    svc.update(id, channel)


@channels.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a channel and its videos",
    responses=NOT_FOUND,
)
def delete_channel(
    id: str = Path(..., description="ID of the channel to delete."),
    svc: ChannelService = Depends(channel_service),
) -> None:
    svc.delete(id)


# Videos

videos = APIRouter(prefix=f"{API_PREFIX}/videos", tags=["videos"])


@videos.get(
    "",
    response_model=list[Video],
    summary="List videos",
    description="Paged video listing, filterable by exact name or name substring "
    "and sortable by any video field.",
    responses=NOT_FOUND,
)
def list_videos(
    params: ListParams = Depends(), svc: VideoService = Depends(video_service)
) -> list[Video]:
    return svc.find_all(**params.as_kwargs())


@videos.get("/{id}", response_model=Video, summary="Get a video", responses=NOT_FOUND)
def get_video(
    id: str = Path(..., description="ID of the video."),
    svc: VideoService = Depends(video_service),
) -> Video:
    return svc.get(id)


@videos.get(
    "/{id}/comments",
    response_model=list[Comment],
    summary="List a video's comments",
    responses={
        **NOT_FOUND,
        status.HTTP_403_FORBIDDEN: {"description": "Video comments are turned off"},
    },
)
def list_video_comments(
    id: str = Path(..., description="ID of the video."),
    svc: VideoService = Depends(video_service),
) -> list[Comment]:
    return svc.list_comments(id)


@videos.get(
    "/{id}/captions",
    response_model=list[Caption],
    summary="List a video's captions",
    responses=NOT_FOUND,
)
def list_video_captions(
    id: str = Path(..., description="ID of the video."),
    svc: VideoService = Depends(video_service),
) -> list[Caption]:
    return svc.list_captions(id)


@videos.post(
    "",
    response_model=Video,
    status_code=status.HTTP_201_CREATED,
    summary="Create a video",
    responses=BAD_REQUEST,
)
def create_video(video: Video, svc: VideoService = Depends(video_service)) -> Video:
    return svc.create(video)


@videos.put(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Replace a video",
    description="Rebuilds the video from the path id and the body's name, description, "
    "releaseTime, comments, captions and commentsEnabled.",
    responses={**NOT_FOUND, **BAD_REQUEST},
)
def update_video(
    video: Video,
    id: str = Path(..., description="ID of the video to replace."),
    svc: VideoService = Depends(video_service),
) -> None:
    svc.update(id, video)


@videos.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a video with its comments and captions",
    responses=NOT_FOUND,
)
def delete_video(
    id: str = Path(..., description="ID of the video to delete."),
    svc: VideoService = Depends(video_service),
) -> None:
    svc.delete(id)


# Comments

comments = APIRouter(prefix=f"{API_PREFIX}/comments", tags=["comments"])


@comments.get(
    "",
    response_model=list[Comment],
    summary="List comments",
    description="Paged comment listing. name, order and containing are accepted but ignored.",
)
def list_comments(
    params: ListParams = Depends(), svc: CommentService = Depends(comment_service)
) -> list[Comment]:
    return svc.find_all(**params.as_kwargs())


@comments.get(
    "/{id}",
    response_model=Comment,
    summary="Get a comment",
    responses={
        **NOT_FOUND,
        status.HTTP_403_FORBIDDEN: {"description": "Video comments are turned off"},
    },
)
def get_comment(
    id: str = Path(..., description="ID of the comment."),
    svc: CommentService = Depends(comment_service),
) -> Comment:
    return svc.get(id)


@comments.post(
    "",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    summary="Create a comment",
    responses=BAD_REQUEST,
)
def create_comment(comment: Comment, svc: CommentService = Depends(comment_service)) -> Comment:
    return svc.create(comment)


@comments.put(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Replace a comment",
    responses={**NOT_FOUND, **BAD_REQUEST},
)
def update_comment(
    comment: Comment,
    id: str = Path(..., description="ID of the comment to replace."),
    svc: CommentService = Depends(comment_service),
) -> None:
    svc.update(id, comment)


@comments.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a comment",
    responses=NOT_FOUND,
)
def delete_comment(
    id: str = Path(..., description="ID of the comment to delete."),
    svc: CommentService = Depends(comment_service),
) -> None:
    svc.delete(id)


# Captions

captions = APIRouter(prefix=f"{API_PREFIX}/captions", tags=["captions"])


@captions.get(
    "",
    response_model=list[Caption],
    summary="List captions",
    description="Paged caption listing. name, order and containing are accepted but ignored.",
)
def list_captions(
    params: ListParams = Depends(), svc: CaptionService = Depends(caption_service)
) -> list[Caption]:
    return svc.find_all(**params.as_kwargs())


@captions.get("/{id}", response_model=Caption, summary="Get a caption", responses=NOT_FOUND)
def get_caption(
    id: str = Path(..., description="ID of the caption."),
    svc: CaptionService = Depends(caption_service),
) -> Caption:
    return svc.get(id)


@captions.post(
    "",
    response_model=Caption,
    status_code=status.HTTP_201_CREATED,
    summary="Create a caption",
    responses=BAD_REQUEST,
)
def create_caption(caption: Caption, svc: CaptionService = Depends(caption_service)) -> Caption:
    return svc.create(caption)


@captions.put(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Replace a caption",
    responses={**NOT_FOUND, **BAD_REQUEST},
)
def update_caption(
    caption: Caption,
    id: str = Path(..., description="ID of the caption to replace."),
    svc: CaptionService = Depends(caption_service),
) -> None:
    svc.update(id, caption)


@captions.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a caption",
    responses=NOT_FOUND,
)
def delete_caption(
    id: str = Path(..., description="ID of the caption to delete."),
    svc: CaptionService = Depends(caption_service),
) -> None:
    svc.delete(id)


# Error mapping

async def _not_found(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _forbidden(request: Request, exc: CommentForbiddenError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    # Only a database opened by get_services belongs to the app
    if app.state.database is not None:
        app.state.database.close()
        app.state.database = None


def create_app(services: Services | None = None) -> FastAPI:
    """Build the videominer application.

    Args:
        services: Services to serve. When omitted, a SQLite-backed set is
                  created from settings on the first request.
    """
    app = FastAPI(
        title="VideoMiner",
        description="CRUD API for mined YouTube channels, videos, comments and captions.",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.services = services
    app.state.database = None

    for router in (channels, videos, comments, captions):
        app.include_router(router)

    app.add_exception_handler(ResourceNotFoundError, _not_found)
    app.add_exception_handler(CommentForbiddenError, _forbidden)
    app.add_exception_handler(InvalidEntityError, _bad_request)
    app.add_exception_handler(InvalidPageRequestError, _bad_request)
    app.add_exception_handler(RequestValidationError, _invalid_body)
    return app


app = create_app()
