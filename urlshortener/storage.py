"""File and database persistence of URL records."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from urlshortener import base62
from urlshortener.config import Config
from urlshortener.errors import (
    DuplicateURLError,
    NoDatabaseError,
    URLDeletedError,
    URLNotFoundError,
    URLSaveError,
)
from urlshortener.models import (
    BatchUnitURLRequest,
    DeleteRecord,
    Stats,
    URLRecord,
    UserURLResponse,
)

URLS_TABLE_QUERY = (
    "CREATE TABLE IF NOT EXISTS urls "
    "(user_id text, short_url text, url text PRIMARY KEY, deleted bool DEFAULT false);"
)

_INSERT = text("INSERT INTO urls (user_id, short_url, url) VALUES (:user_id, :short_url, :url)")
_SELECT_ONE = text("SELECT url, deleted FROM urls WHERE short_url = :short_url")
_SELECT_USER = text("SELECT short_url, url FROM urls WHERE user_id = :user_id")
_MARK_DELETED = text(
    "UPDATE urls SET deleted = :deleted WHERE user_id = :user_id AND short_url = :short_url"
)
_COUNT_URLS = text("SELECT COUNT(DISTINCT url) FROM urls")
_COUNT_USERS = text("SELECT COUNT(DISTINCT user_id) FROM urls")

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _encode_line(data: dict[str, Any]) -> str:
    encoded = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    for char, escape in _JSON_ESCAPES.items():
        encoded = encoded.replace(char, escape)
    return encoded + "\n"


def _engine_url(address: str) -> str:
    if address.startswith("postgres://"):
        return "postgresql://" + address[len("postgres://"):]
    return address


class Storage:
    """Append-only JSON-lines file, in-memory map and optional SQL database."""

    def __init__(self, cfg: Config) -> None:
        self.cfg = cfg
        self._lock = threading.Lock()
        self.file = open(cfg.storage_path, "a+", encoding="utf-8", newline="")
        self.engine: Engine | None = None
        try:
            self.urls: dict[str, URLRecord] = self._load_records()
            if cfg.db_address:
                self.engine = self._connect(cfg.db_address)
        except BaseException:
            self.file.close()
            raise

    def _load_records(self) -> dict[str, URLRecord]:
        self.file.seek(0)
        urls: dict[str, URLRecord] = {}
        for line in self.file:
            record = URLRecord.from_dict(json.loads(line.rstrip("\r\n")))
            urls[record.original_url] = record
        return urls

    @staticmethod
    def _connect(address: str) -> Engine:
        engine = create_engine(_engine_url(address))
        try:
            with engine.begin() as conn:
                conn.execute(text(URLS_TABLE_QUERY))
        except BaseException:
            engine.dispose()
            raise
        return engine

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise NoDatabaseError()
        return self.engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection whose work commits on success and rolls back on error."""
        with self._require_engine().begin() as conn:
            yield conn

    def save(self, record: URLRecord) -> None:
        """Insert one record; raise DuplicateURLError if its URL is already stored."""
        engine = self._require_engine()
        params = {"user_id": record.user_id, "short_url": record.short_url, "url": record.original_url}
        try:
            with engine.begin() as conn:
                conn.execute(_INSERT, params)
        except IntegrityError as exc:
            raise DuplicateURLError() from exc
        except SQLAlchemyError as exc:
            raise URLSaveError() from exc

    def save_batch(
        self, conn: Connection, user_id: str, requests: Iterable[BatchUnitURLRequest]
    ) -> None:
        """Insert every requested URL for the user on the given connection."""
        for req in requests:
            short = base62.encode(req.original_url.encode("utf-8"))
            conn.execute(_INSERT, {"user_id": user_id, "short_url": short, "url": req.original_url})

    def get(self, short_url: str) -> str:
        """Return the original URL stored under a short URL."""
        with self._require_engine().connect() as conn:
            row = conn.execute(_SELECT_ONE, {"short_url": short_url}).first()
        if row is None:
            raise URLNotFoundError()
        url, deleted = row
        if deleted:
            raise URLDeletedError()
        if not url:
            raise URLNotFoundError()
        return url

    def get_multiple(self, user_id: str) -> list[UserURLResponse]:
        """Return every URL stored for a user."""
        with self._require_engine().connect() as conn:
            rows = conn.execute(_SELECT_USER, {"user_id": user_id}).all()
        return [UserURLResponse(short_url=short, original_url=url) for short, url in rows]

    def delete(self, conn: Connection, records: Iterable[DeleteRecord]) -> None:
        """Mark each user's short URL as deleted on the given connection."""
        for record in records:
            conn.execute(
                _MARK_DELETED,
                {"deleted": True, "user_id": record.user_id, "short_url": record.short_url},
            )

    def stats(self) -> Stats:
        """Count distinct URLs and users in the database."""
        with self._require_engine().connect() as conn:
            urls = conn.execute(_COUNT_URLS).scalar_one()
            users = conn.execute(_COUNT_USERS).scalar_one()
        return Stats(urls=int(urls), users=int(users))

    def ping_db(self) -> bool:
        """Tell whether the database answers."""
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def append_record(self, record: URLRecord) -> None:
        """Write a record to the file and keep it in memory under its short URL."""
        with self._lock:
            self.file.write(_encode_line(record.to_dict()))
            self.file.flush()
            self.urls[record.short_url] = record

    def close(self) -> None:
        """Close the file and release database connections."""
        self.file.close()
        if self.engine is not None:
            self.engine.dispose()

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()