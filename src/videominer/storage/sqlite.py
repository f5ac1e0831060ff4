"""SQLite implementation of the videominer stores."""

import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Generic, Iterator, TypeVar

from videominer.config import settings
from videominer.models import Caption, Channel, Comment, Video
from videominer.pagination import InvalidPageRequestError, Page, PageRequest, Sort
from videominer.storage.repository import (
    CaptionRepository,
    ChannelRepository,
    CommentRepository,
    VideoRepository,
)

M = TypeVar("M")


class SQLiteDatabase:
    """Shared SQLite connection holding one table per entity.

    Child tables carry their owner's foreign key plus a ``position`` column
    that keeps the owner's list order. The connection is shared between
    server worker threads, so every access goes through a re-entrant lock.
    """

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS channels (
            id            TEXT PRIMARY KEY NOT NULL,
            name          TEXT NOT NULL,
            description   TEXT,
            created_time  TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS videos (
            id                TEXT PRIMARY KEY NOT NULL,
            channel_id        TEXT REFERENCES channels(id),
            position          INTEGER,
            name              TEXT,
            description       TEXT,
            release_time      TEXT,
            comments_enabled  INTEGER NOT NULL DEFAULT 1
        );

        CREATE TABLE IF NOT EXISTS comments (
            id          TEXT PRIMARY KEY NOT NULL,
            video_id    TEXT REFERENCES videos(id),
            position    INTEGER,
            text        TEXT,
            created_on  TEXT,
            author      TEXT
        );

        CREATE TABLE IF NOT EXISTS captions (
            id        TEXT PRIMARY KEY NOT NULL,
            video_id  TEXT REFERENCES videos(id),
            position  INTEGER,
            name      TEXT,
            language  TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_videos_channel ON videos (channel_id);
        CREATE INDEX IF NOT EXISTS idx_comments_video ON comments (video_id);
        CREATE INDEX IF NOT EXISTS idx_captions_video ON captions (video_id);
    """

    def __init__(self, db_path: str | None = None) -> None:
        """Open (and create if needed) the database.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        if db_path is None:
            settings.ensure_dirs()
        self._db_path = db_path or str(settings.db_path)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._init_db()

    @property
    def path(self) -> str:
        return self._db_path

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            self._conn.executescript(self._SCHEMA)
            self._conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed writes as one transaction.

        Commits on normal exit and rolls back if the block raises.
        """
        with self._lock, self._conn:
            yield self._conn

    def query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class _SQLiteRepository(Generic[M]):
    """Row-mapping and paging shared by the per-entity stores.

    Subclasses name their table, map models to rows and back, and cascade
    saves and deletes to the collections they own.
    """

    _TABLE: str
    _OWNER_COLUMN: str | None = None
    _SORT_COLUMNS: dict[str, str] = {}

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def get(self, entity_id: str) -> M | None:
        """Retrieve an entity by ID, with everything it owns. Returns None if not found."""
        rows = self._db.query(f"SELECT * FROM {self._TABLE} WHERE id = ?", (entity_id,))
        if not rows:
            return None
        return self._from_row(rows[0])

    def exists(self, entity_id: str) -> bool:
        sql = f"SELECT 1 FROM {self._TABLE} WHERE id = ? LIMIT 1"
        return bool(self._db.query(sql, (entity_id,)))

    def find_all(self, request: PageRequest) -> Page[M]:
        return self._find_page("", (), request)

    def save(self, entity: M) -> M:
        """Upsert the entity and replace the collections it owns."""
        with self._db.transaction() as conn:
            self._store(conn, entity)
        return entity

    def delete(self, entity_id: str) -> None:
        """Remove the entity and, recursively, everything it owns."""
        with self._db.transaction() as conn:
            self._remove(conn, entity_id)

    # Hooks

    def _to_row(self, entity: M) -> dict[str, Any]:
        raise NotImplementedError

    def _from_row(self, row: sqlite3.Row) -> M:
        raise NotImplementedError

    def _store_children(self, conn: sqlite3.Connection, entity: M) -> None:
        pass

    def _remove_children(self, conn: sqlite3.Connection, entity_id: str) -> None:
        pass

    # Writes (caller holds the transaction)

    def _store(
        self,
        conn: sqlite3.Connection,
        entity: M,
        owner_id: str | None = None,
        position: int | None = None,
    ) -> None:
        row = self._to_row(entity)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        updates = ", ".join(f"{col} = excluded.{col}" for col in row if col != "id")
        conn.execute(
            f"INSERT INTO {self._TABLE} ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            tuple(row.values()),
        )
        # A standalone save leaves the owner untouched.
        if owner_id is not None:
            conn.execute(
                f"UPDATE {self._TABLE} SET {self._OWNER_COLUMN} = ?, position = ? WHERE id = ?",
                (owner_id, position, row["id"]),
            )
        self._store_children(conn, entity)

    def _remove(self, conn: sqlite3.Connection, entity_id: str) -> None:
        self._remove_children(conn, entity_id)
        conn.execute(f"DELETE FROM {self._TABLE} WHERE id = ?", (entity_id,))

    def _replace_owned(self, conn: sqlite3.Connection, owner_id: str, children: list[M]) -> None:
        """Detach every current child of ``owner_id`` and attach ``children`` in order."""
        conn.execute(
            f"UPDATE {self._TABLE} SET {self._OWNER_COLUMN} = NULL, position = NULL "
            f"WHERE {self._OWNER_COLUMN} = ?",
            (owner_id,),
        )
        for position, child in enumerate(children):
            self._store(conn, child, owner_id=owner_id, position=position)

    def _remove_owned(self, conn: sqlite3.Connection, owner_id: str) -> None:
        sql = f"SELECT id FROM {self._TABLE} WHERE {self._OWNER_COLUMN} = ?"
        for row in conn.execute(sql, (owner_id,)).fetchall():
            self._remove(conn, row["id"])

    # Reads

    def _list_owned(self, owner_id: str) -> list[M]:
        sql = f"SELECT * FROM {self._TABLE} WHERE {self._OWNER_COLUMN} = ? ORDER BY position"
        return [self._from_row(row) for row in self._db.query(sql, (owner_id,))]

    def _find_page(self, where: str, params: tuple, request: PageRequest) -> Page[M]:
        order_by = self._order_by(request.sort)
        total = self._db.query(f"SELECT COUNT(*) FROM {self._TABLE} {where}", params)[0][0]
        rows = self._db.query(
            f"SELECT * FROM {self._TABLE} {where} {order_by} LIMIT ? OFFSET ?",
            (*params, request.size, request.offset),
        )
        return Page(
            content=[self._from_row(row) for row in rows],
            number=request.page,
            size=request.size,
            total_elements=total,
        )

    def _order_by(self, sort: Sort | None) -> str:
        if sort is None:
            return "ORDER BY rowid"
        column = self._SORT_COLUMNS.get(sort.field)
        if column is None:
            raise InvalidPageRequestError(
                f"No sortable property '{sort.field}' found for {self._TABLE}"
            )
        direction = "DESC" if sort.descending else "ASC"
        return f"ORDER BY {column} {direction}, id ASC"


class _NamedSQLiteRepository(_SQLiteRepository[M]):
    """Adds exact and substring filtering on the ``name`` column."""

    def find_by_name(self, name: str, request: PageRequest) -> Page[M]:
        return self._find_page("WHERE name = ?", (name,), request)

    def find_by_name_containing(self, text: str, request: PageRequest) -> Page[M]:
        # instr() is case-sensitive, unlike LIKE
        return self._find_page("WHERE instr(name, ?) > 0", (text,), request)


class SQLiteCaptionRepository(_SQLiteRepository[Caption], CaptionRepository):
    """SQLite-backed caption storage."""

    _TABLE = "captions"
    _OWNER_COLUMN = "video_id"

    def _to_row(self, caption: Caption) -> dict[str, Any]:
        return {"id": caption.id, "name": caption.name, "language": caption.language}

    def _from_row(self, row: sqlite3.Row) -> Caption:
        return Caption(id=row["id"], name=row["name"], language=row["language"])


class SQLiteCommentRepository(_SQLiteRepository[Comment], CommentRepository):
    """SQLite-backed comment storage."""

    _TABLE = "comments"
    _OWNER_COLUMN = "video_id"

    def comments_allowed(self, comment_id: str) -> bool:
        sql = """
            SELECT v.comments_enabled
            FROM comments c JOIN videos v ON v.id = c.video_id
            WHERE c.id = ?
        """
        rows = self._db.query(sql, (comment_id,))
        return not rows or bool(rows[0]["comments_enabled"])

    def _to_row(self, comment: Comment) -> dict[str, Any]:
        return {
            "id": comment.id,
            "text": comment.text,
            "created_on": comment.created_on,
            "author": comment.author,
        }

    def _from_row(self, row: sqlite3.Row) -> Comment:
        return Comment(
            id=row["id"],
            text=row["text"],
            created_on=row["created_on"],
            author=row["author"],
        )


class SQLiteVideoRepository(_NamedSQLiteRepository[Video], VideoRepository):
    """SQLite-backed video storage.

    Comments and captions live in their own tables and are saved and
    deleted together with the video that owns them.
    """

    _TABLE = "videos"
    _OWNER_COLUMN = "channel_id"
    _SORT_COLUMNS = {
        "id": "id",
        "name": "name",
        "description": "description",
        "releaseTime": "release_time",
        "release_time": "release_time",
    }

    def __init__(self, database: SQLiteDatabase) -> None:
        super().__init__(database)
        self._comments = SQLiteCommentRepository(database)
        self._captions = SQLiteCaptionRepository(database)

    def _to_row(self, video: Video) -> dict[str, Any]:
        return {
            "id": video.id,
            "name": video.name,
            "description": video.description,
            "release_time": video.release_time,
            "comments_enabled": int(video.comments_enabled),
        }

    def _from_row(self, row: sqlite3.Row) -> Video:
        return Video(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            release_time=row["release_time"],
            comments=self._comments._list_owned(row["id"]),
            captions=self._captions._list_owned(row["id"]),
            comments_enabled=bool(row["comments_enabled"]),
        )

    def _store_children(self, conn: sqlite3.Connection, video: Video) -> None:
        self._comments._replace_owned(conn, video.id, video.comments)
        self._captions._replace_owned(conn, video.id, video.captions)

    def _remove_children(self, conn: sqlite3.Connection, video_id: str) -> None:
        self._comments._remove_owned(conn, video_id)
        self._captions._remove_owned(conn, video_id)


class SQLiteChannelRepository(_NamedSQLiteRepository[Channel], ChannelRepository):
    """SQLite-backed channel storage. Videos cascade with their channel."""

    _TABLE = "channels"
    _SORT_COLUMNS = {
        "id": "id",
        "name": "name",
        "description": "description",
        "createdTime": "created_time",
        "created_time": "created_time",
    }

    def __init__(self, database: SQLiteDatabase) -> None:
        super().__init__(database)
        self._videos = SQLiteVideoRepository(database)

    def _to_row(self, channel: Channel) -> dict[str, Any]:
        return {
            "id": channel.id,
            "name": channel.name,
            "description": channel.description,
            "created_time": channel.created_time,
        }

    def _from_row(self, row: sqlite3.Row) -> Channel:
        return Channel(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            created_time=row["created_time"],
            videos=self._videos._list_owned(row["id"]),
        )

    def _store_children(self, conn: sqlite3.Connection, channel: Channel) -> None:
        self._videos._replace_owned(conn, channel.id, channel.videos)

    def _remove_children(self, conn: sqlite3.Connection, channel_id: str) -> None:
        self._videos._remove_owned(conn, channel_id)
