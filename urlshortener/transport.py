"""HTTP routing, authentication cookies and compression for the shortener."""

from __future__ import annotations

import gzip
import logging
import time
import uuid
import zlib
from datetime import datetime, timedelta, timezone

import jwt
from flask import Flask, Response, g, request

from urlshortener.config import Config
from urlshortener.handler import TEXT_PLAIN, Handler, Reply

COOKIE_NAME = "jwt"
COOKIE_MAX_AGE = 60
TOKEN_LIFETIME = timedelta(minutes=1)

_SIGNING_KEY = "secret"
_ALGORITHMS = ["HS256", "HS384", "HS512"]
_COMPRESSIBLE = {"application/json", "text/html"}


def sign_user_token(user_id: str) -> str:
    """Return a signed token identifying the user, valid for one minute."""
    claims = {"exp": datetime.now(timezone.utc) + TOKEN_LIFETIME, "UserID": user_id}
    return jwt.encode(claims, _SIGNING_KEY, algorithm="HS256")


def parse_user_token(token: str) -> str:
    """Verify a token and return the user ID it carries.

    Raises jwt.InvalidTokenError when the token is malformed, expired or
    signed with another key.
    """
    claims = jwt.decode(token, _SIGNING_KEY, algorithms=_ALGORITHMS)
    user_id = claims.get("UserID", "")
    if user_id is None:
        return ""
    if not isinstance(user_id, str):
        raise jwt.InvalidTokenError("UserID must be a string")
    return user_id


def _unverified_user_id(token: str) -> str:
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return ""
    user_id = claims.get("UserID")
    return user_id if isinstance(user_id, str) else ""


class Transport:
    """Builds the web application that serves the shortener handlers."""

    def __init__(self, cfg: Config, handler: Handler, log: logging.Logger | None = None) -> None:
        self.cfg = cfg
        self.handler = handler
        self.log = log if log is not None else logging.getLogger(__name__)

    def create_app(self) -> Flask:
        """Return a Flask application with all routes and request hooks."""
        app = Flask(__name__)
        app.before_request(self._before_request)
        app.after_request(self._after_request)

        def post_url() -> Response:
            return self._send(self.handler.post_url(g.body, g.user_id, self.cfg))

        def shorten_url() -> Response:
            return self._send(self.handler.shorten_url(g.body, g.user_id, self.cfg))

        def shorten_batch() -> Response:
            return self._send(self.handler.shorten_batch(g.body, g.user_id, self.cfg))

        def get_url(url_id: str) -> Response:
            return self._send(self.handler.get_url(url_id))

        def ping_db() -> Response:
            return self._send(self.handler.ping_db())

        def get_user_urls() -> Response:
            return self._send(self.handler.get_user_urls(g.user_id, self.cfg))

        def get_stats() -> Response:
            real_ip = request.headers.get("X-Real-IP", "")
            return self._send(self.handler.get_stats(real_ip, self.cfg))

        def delete_urls() -> Response:
            return self._send(self.handler.delete_urls(g.body, g.user_id))

        app.add_url_rule("/", "post_url", post_url, methods=["POST"])
        app.add_url_rule("/api/shorten", "shorten_url", shorten_url, methods=["POST"])
        app.add_url_rule("/api/shorten/batch", "shorten_batch", shorten_batch, methods=["POST"])
        app.add_url_rule("/ping", "ping_db", ping_db, methods=["GET"])
        app.add_url_rule("/api/user/urls", "get_user_urls", get_user_urls, methods=["GET"])
        app.add_url_rule("/api/user/urls", "delete_urls", delete_urls, methods=["DELETE"])
        app.add_url_rule("/api/internal/stats", "get_stats", get_stats, methods=["GET"])
        app.add_url_rule("/<url_id>", "get_url", get_url, methods=["GET"])
        return app

    @staticmethod
    def _send(reply: Reply) -> Response:
        body = b"" if reply.status == 204 else reply.data
        return Response(
            body,
            status=reply.status,
            content_type=reply.content_type,
            headers=dict(reply.headers),
        )

    def _before_request(self) -> Response | None:
        g.started = time.perf_counter()
        g.issued_jwt = None
        g.user_id = ""
        g.body = self._decoded_body()
        return self._authenticate()

    def _decoded_body(self) -> bytes:
        raw = request.get_data()
        if request.headers.get("Content-Encoding") != "gzip":
            return raw
        try:
            return gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as exc:
            self.log.error("failed to read gzipped body: %s path=%s", exc, request.path)
            return raw

    def _authenticate(self) -> Response | None:
        presented = request.cookies.get(COOKIE_NAME)
        if presented is not None:
            try:
                g.user_id = parse_user_token(presented)
                return None
            except jwt.PyJWTError:
                if not _unverified_user_id(presented):
                    return Response("User ID not found!", status=401, content_type=TEXT_PLAIN)

        user_id = str(uuid.uuid4())
        g.user_id = user_id
        g.issued_jwt = sign_user_token(user_id)
        return None

    def _after_request(self, response: Response) -> Response:
        issued = g.get("issued_jwt")
        if issued:
            response.set_cookie(
                COOKIE_NAME,
                issued,
                max_age=COOKIE_MAX_AGE,
                path="/",
                secure=False,
                httponly=True,
            )

        if (
            request.headers.get("Accept-Encoding") == "gzip"
            and response.mimetype in _COMPRESSIBLE
            and not response.direct_passthrough
        ):
            response.set_data(gzip.compress(response.get_data()))
            response.headers["Content-Encoding"] = "gzip"

        started = g.get("started", time.perf_counter())
        self.log.info(
            "request completed uri=%s method=%s duration=%.6fs status=%d size=%d",
            request.full_path.rstrip("?"),
            request.method,
            time.perf_counter() - started,
            response.status_code,
            response.content_length or 0,
        )
        return response