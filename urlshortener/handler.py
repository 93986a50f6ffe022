"""HTTP-level handling of shortener requests, independent of the web framework."""

from __future__ import annotations

import ipaddress
import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from urlshortener.config import Config
from urlshortener.errors import DuplicateURLError, URLDeletedError
from urlshortener.models import BatchUnitURLRequest, ShortenURLRequest
from urlshortener.service import URLService, _short_for

TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json; charset=utf-8"


@dataclass(frozen=True)
class Reply:
    """Status, body and headers of a response.

    ``body`` is a string for plain-text replies and a JSON-ready value for
    JSON replies.
    """

    status: int
    body: Any = ""
    content_type: str = TEXT_PLAIN
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def text(cls, status: int, message: str = "", headers: Mapping[str, str] | None = None) -> Reply:
        return cls(status=status, body=message, content_type=TEXT_PLAIN, headers=dict(headers or {}))

    @classmethod
    def json(cls, status: int, data: Any) -> Reply:
        return cls(status=status, body=data, content_type=APPLICATION_JSON)

    @property
    def is_json(self) -> bool:
        return self.content_type == APPLICATION_JSON

    @property
    def data(self) -> bytes:
        """The body as bytes ready to be sent."""
        if self.is_json:
            return json.dumps(self.body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return str(self.body).encode("utf-8")


def _is_web_url(text: str) -> bool:
    if any(ord(char) < 0x20 or ord(char) == 0x7F for char in text):
        return False
    try:
        parts = urlsplit(text)
    except ValueError:
        return False
    return parts.scheme in ("http", "https")


def _join(base_url: str, short: str) -> str:
    return f"{base_url}/{short}"


def _decode_string_list(body: bytes) -> list[str]:
    data = json.loads(body)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("expected a JSON array")
    items = []
    for item in data:
        if item is None:
            item = ""
        if not isinstance(item, str):
            raise ValueError("expected an array of strings")
        items.append(item)
    return items


def _decode_batch(body: bytes) -> list[BatchUnitURLRequest]:
    data = json.loads(body)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("expected a JSON array")
    return [BatchUnitURLRequest.from_dict(item) for item in data]


def _parse_ip(text: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        address = ipaddress.ip_address(text.strip())
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


class Handler:
    """Turns request data into replies using the URL service."""

    def __init__(self, service: URLService, log: logging.Logger | None = None) -> None:
        self.service = service
        self.log = log if log is not None else logging.getLogger(__name__)

    def post_url(self, body: bytes, user_id: str, cfg: Config) -> Reply:
        """Shorten a URL sent as plain text."""
        if not body:
            return Reply.text(400, "Empty body!")
        try:
            url = body.decode("utf-8")
        except UnicodeDecodeError:
            return Reply.text(400, "Malformed URI!")
        if not _is_web_url(url):
            return Reply.text(400, "Malformed URI!")

        try:
            short = self.service.save_url(url, user_id)
        except DuplicateURLError as exc:
            short = getattr(exc, "short_url", None) or _short_for(url)
            return Reply.text(409, _join(cfg.base_url, short))
        except Exception:
            self.log.exception("failed to save URL")
            return Reply.text(400, "Couldn't encode URL!")
        return Reply.text(201, _join(cfg.base_url, short))

    def shorten_url(self, body: bytes, user_id: str, cfg: Config) -> Reply:
        """Shorten a URL sent as a JSON object."""
        try:
            request = ShortenURLRequest.from_dict(json.loads(body))
        except ValueError:
            return Reply.text(400, "Couldn't unmarshal!")
        if not request.url:
            return Reply.text(400, "Empty body!")

        try:
            short = self.service.save_url(request.url, user_id)
        except DuplicateURLError as exc:
            short = getattr(exc, "short_url", None) or _short_for(request.url)
            return Reply.json(409, {"result": _join(cfg.base_url, short)})
        except Exception:
            self.log.exception("failed to save URL")
            return Reply.text(400, "Couldn't encode URL!")
        return Reply.json(201, {"result": _join(cfg.base_url, short)})

    def shorten_batch(self, body: bytes, user_id: str, cfg: Config) -> Reply:
        """Shorten a JSON array of URLs."""
        try:
            requests = _decode_batch(body)
        except ValueError:
            return Reply.text(400, "Error unmarshalling body!")
        if not requests:
            return Reply.text(400, "Empty or malformed body sent!")

        try:
            responses = self.service.shorten_batch(user_id, requests)
        except Exception:
            self.log.exception("failed to save batch")
            return Reply.text(400, "Error saving URLs!")

        result = []
        for response in responses:
            response.short_url = _join(cfg.base_url, response.short_url)
            result.append(response.to_dict())
        return Reply.json(201, result)

    def get_url(self, url_id: str) -> Reply:
        """Redirect to the original URL behind a short key."""
        if not url_id:
            return Reply.text(400, "URL is empty!")
        try:
            url = self.service.get_url(url_id)
        except URLDeletedError:
            return Reply.text(410, "URL was deleted!")
        except Exception:
            return Reply.text(400, "URL not found!")
        return Reply.text(307, "", headers={"Location": url})

    def get_user_urls(self, user_id: str, cfg: Config) -> Reply:
        """List the URLs a user has shortened."""
        try:
            urls = self.service.get_user_urls(user_id)
        except Exception:
            self.log.exception("failed to list user URLs")
            return Reply.text(400, "Error finding URLs!")
        if not urls:
            return Reply.text(204, "No URLs found!")

        result = []
        for item in urls:
            item.short_url = _join(cfg.base_url, item.short_url)
            result.append(item.to_dict())
        return Reply.json(200, result)

    def delete_urls(self, body: bytes, user_id: str) -> Reply:
        """Accept a JSON array of short keys and delete them in the background."""
        try:
            short_urls = _decode_string_list(body)
        except ValueError:
            return Reply.text(400, "Error unmarshalling body!")
        if not short_urls:
            return Reply.text(400, "Empty or malformed body sent!")

        worker = threading.Thread(
            target=self._delete_in_background, args=(short_urls, user_id), daemon=True
        )
        worker.start()
        return Reply.text(202, "")

    def _delete_in_background(self, short_urls: list[str], user_id: str) -> None:
        try:
            self.service.delete_urls(short_urls, user_id)
        except Exception:
            self.log.exception("background deletion failed")

    def get_stats(self, real_ip: str, cfg: Config) -> Reply:
        """Return service statistics to clients inside the trusted subnet."""
        if not cfg.trusted_subnet:
            return Reply.text(403, "No CIDR set!")

        address = _parse_ip(real_ip or "")
        try:
            if "/" not in cfg.trusted_subnet:
                raise ValueError("missing prefix length")
            network = ipaddress.ip_network(cfg.trusted_subnet.strip(), strict=False)
        except ValueError:
            return Reply.text(500, "Can't parse CIDR!")

        if address is None or address not in network:
            return Reply.text(403, "IP address is not trusted!")

        try:
            stats = self.service.get_stats()
        except Exception:
            return Reply.text(400, "Stats not found!")
        return Reply.json(200, stats.to_dict())

    def ping_db(self) -> Reply:
        """Report whether the database answers."""
        if self.service.ping_db():
            return Reply.text(200, "Live")
        return Reply.text(500, "Can't connect to the Database!")