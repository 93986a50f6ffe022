"""Errors raised by the shortener."""

from __future__ import annotations


class ShortenerError(Exception):
    """Base class of all shortener errors."""

    default_message = "URL shortener error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class DuplicateURLError(ShortenerError):
    """The URL is already stored."""

    default_message = "duplicate URL record"


class URLNotFoundError(ShortenerError, LookupError):
    """No URL is stored under the given key."""

    default_message = "error finding URL"


class URLDeletedError(ShortenerError):
    """The URL was marked as deleted."""

    default_message = "URL was deleted"


class URLSaveError(ShortenerError):
    """The URL could not be stored."""

    default_message = "can't save URL"


class TxCommitError(ShortenerError):
    """A transaction could not be committed."""

    default_message = "can't commit a Tx"


class NoDatabaseError(ShortenerError):
    """The operation needs a database and none is configured."""

    default_message = "error connecting DB"