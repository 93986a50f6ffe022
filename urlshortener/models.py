"""Request, response and record types exchanged by the shortener."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


def _decode_object(data: Any, fields: tuple[tuple[str, str, type], ...]) -> dict[str, Any]:
    """Pick known fields out of a decoded JSON object.

    Keys match case-insensitively, unknown keys and nulls are ignored, and a
    value of the wrong type raises ValueError.
    """
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    by_key = {key.lower(): (attr, kind) for attr, key, kind in fields}
    values: dict[str, Any] = {}
    for key, value in data.items():
        match = by_key.get(str(key).lower())
        if match is None or value is None:
            continue
        attr, kind = match
        if kind is bool:
            valid = isinstance(value, bool)
        elif kind is int:
            valid = isinstance(value, int) and not isinstance(value, bool)
        else:
            valid = isinstance(value, kind)
        if not valid:
            raise ValueError(f"field {key!r} must be of type {kind.__name__}")
        values[attr] = value
    return values


@dataclass
class ShortenURLRequest:
    """Body of a request to shorten one URL."""

    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url}

    @classmethod
    def from_dict(cls, data: Any) -> ShortenURLRequest:
        return cls(**_decode_object(data, (("url", "url", str),)))


@dataclass
class ShortenURLResponse:
    """Body of the reply holding one shortened URL."""

    result: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"result": self.result}


@dataclass
class BatchUnitURLRequest:
    """One URL of a batch shortening request."""

    correlation_id: str = ""
    original_url: str = ""
    user_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "original_url": self.original_url,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> BatchUnitURLRequest:
        fields = (
            ("correlation_id", "correlation_id", str),
            ("original_url", "original_url", str),
            ("user_id", "user_id", str),
        )
        return cls(**_decode_object(data, fields))


@dataclass
class BatchUnitURLResponse:
    """One shortened URL of a batch reply."""

    correlation_id: str = ""
    short_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"correlation_id": self.correlation_id, "short_url": self.short_url}


@dataclass
class UserURLResponse:
    """A short URL owned by a user together with its original."""

    short_url: str = ""
    original_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"short_url": self.short_url, "original_url": self.original_url}


@dataclass
class URLRecord:
    """A stored URL record."""

    user_id: str = ""
    short_url: str = ""
    original_url: str = ""
    deleted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "short_url": self.short_url,
            "original_url": self.original_url,
            "deleted": self.deleted,
        }

    @classmethod
    def from_dict(cls, data: Any) -> URLRecord:
        fields = (
            ("user_id", "user_id", str),
            ("short_url", "short_url", str),
            ("original_url", "original_url", str),
            ("deleted", "deleted", bool),
        )
        return cls(**_decode_object(data, fields))


@dataclass
class DeleteRecord:
    """A request to mark one short URL of a user as deleted."""

    user_id: str = ""
    short_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "short_url": self.short_url}


@dataclass
class Stats:
    """Service statistics."""

    urls: int = 0
    users: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"urls": self.urls, "users": self.users}