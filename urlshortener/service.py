"""URL shortening operations over the file, memory and database storage."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from itertools import islice

from urlshortener import base62
from urlshortener.errors import NoDatabaseError, ShortenerError, URLNotFoundError
from urlshortener.models import (
    BatchUnitURLRequest,
    BatchUnitURLResponse,
    DeleteRecord,
    Stats,
    URLRecord,
    UserURLResponse,
)
from urlshortener.storage import Storage

DELETE_BATCH_SIZE = 5


def _short_for(url: str) -> str:
    return base62.encode(url.encode("utf-8"))


def _chunks(items: Iterable[DeleteRecord], size: int) -> Iterator[list[DeleteRecord]]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


class URLService:
    """Shortens, resolves, lists and deletes URLs."""

    def __init__(self, storage: Storage, log: logging.Logger | None = None) -> None:
        self.storage = storage
        self.log = log if log is not None else logging.getLogger(__name__)
        self._lock = threading.RLock()

    def _remember(self, record: URLRecord) -> None:
        with self._lock:
            if record.short_url not in self.storage.urls:
                self.storage.append_record(record)

    def save_url(self, url: str, user_id: str) -> str:
        """Shorten a URL for a user and return its short key.

        A ShortenerError raised by the database carries the key in its
        ``short_url`` attribute.
        """
        short = _short_for(url)
        record = URLRecord(user_id=user_id, short_url=short, original_url=url)
        if self.storage.engine is not None:
            try:
                self.storage.save(record)
            except ShortenerError as exc:
                exc.short_url = short
                raise
        self._remember(record)
        return short

    def get_url(self, short_url: str) -> str:
        """Return the original URL behind a short key."""
        if self.storage.engine is not None:
            self.storage.get(short_url)
        with self._lock:
            record = self.storage.urls.get(short_url)
        if record is None:
            raise URLNotFoundError()
        return record.original_url

    def shorten_batch(
        self, user_id: str, requests: Iterable[BatchUnitURLRequest]
    ) -> list[BatchUnitURLResponse]:
        """Shorten several URLs at once, in one transaction when a database is set."""
        requests = list(requests)
        if self.storage.engine is not None:
            with self.storage.transaction() as conn:
                self.storage.save_batch(conn, user_id, requests)

        responses = []
        for req in requests:
            record = URLRecord(short_url=_short_for(req.original_url), original_url=req.original_url)
            responses.append(
                BatchUnitURLResponse(correlation_id=req.correlation_id, short_url=record.short_url)
            )
            self._remember(record)
        return responses

    def get_user_urls(self, user_id: str) -> list[UserURLResponse]:
        """Return the URLs stored for a user; empty without a database."""
        if self.storage.engine is None:
            return []
        return self.storage.get_multiple(user_id)

    def ping_db(self) -> bool:
        """Tell whether the database answers."""
        return self.storage.ping_db()

    def delete_urls(self, short_urls: Iterable[str], user_id: str) -> None:
        """Mark a user's short URLs as deleted, committing in small batches."""
        records = (DeleteRecord(user_id=user_id, short_url=short) for short in short_urls)
        self.log.info("Starting URL processing")
        for batch in _chunks(records, DELETE_BATCH_SIZE):
            self.log.info("Committing batch", extra={"count": len(batch)})
            try:
                self._commit_deletes(batch)
            except Exception:
                self.log.error("Failed to commit batch", extra={"batch_size": len(batch)})
                raise
        self.log.info("URL processing completed")

    def _commit_deletes(self, records: list[DeleteRecord]) -> None:
        if self.storage.engine is None:
            return
        with self.storage.transaction() as conn:
            self.storage.delete(conn, records)

    def get_stats(self) -> Stats:
        """Return the number of distinct URLs and users."""
        if self.storage.engine is None:
            raise NoDatabaseError()
        return self.storage.stats()