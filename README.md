# urlshortener

A small HTTP service that turns long URLs into short ones. The short
identifier of a URL is the base62 encoding of its UTF-8 bytes, so the same URL
always gets the same short link.

Records are appended to a JSON-lines file and kept in memory. When a database
address is configured they are also written to an SQL table named `urls`,
which is created on start if it does not exist.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running

```
urlshortener -a localhost:8080 -b http://localhost:8080 -f urls.json
```

The command prints build information, then serves until interrupted
(Ctrl-C, `SIGTERM` or `SIGQUIT`). It exits with status 1 if the server
address is not `host:port` or the storage cannot be opened.

| Flag | Meaning |
|------|---------|
| `-a` | server address, `host:port` |
| `-b` | base URL put in front of short identifiers |
| `-f` | path of the file storage |
| `-d` | database connection string (an SQLAlchemy URL; `postgres://` is accepted as `postgresql://`) |
| `-c` | path of a JSON configuration file |
| `-t` | also sets the path of the JSON configuration file, like `-c` |
| `-s` | serve over HTTPS, using `cert.pem` and `key.pem` in the working directory |

Settings are merged in this order, later ones winning when non-empty:
flags, then the JSON configuration file, then environment variables.

Environment variables: `SERVER_ADDRESS`, `BASE_URL`, `FILE_STORAGE_PATH`,
`DATABASE_DSN`, `CONFIG`, `HTTPS` (`true`/`false`, `1`/`0`, `t`/`f`) and
`TRUSTED_SUBNET`.

The JSON configuration file is an object whose keys are matched without
regard to case: `ServerAddr`, `BaseURL`, `StoragePath`, `DBAddress`,
`TrustedSubnet` (strings) and `HTTPS` (boolean; only `true` has an effect).

Defaults: the server listens on `localhost:8080`, the base URL is `http://`
followed by the server address, and records go to `urls.json`.

A database driver for the chosen SQLAlchemy URL is not installed with this
package and must be installed separately.

## Endpoints

| Method | Path | Purpose |
|--------|------|---------|
| `POST` | `/` | plain-text `http`/`https` URL in the body; replies `201` with the short URL, `409` if the database already holds it |
| `POST` | `/api/shorten` | `{"url": "..."}`; replies with `{"result": "..."}` |
| `POST` | `/api/shorten/batch` | JSON list of `{"correlation_id", "original_url"}`; replies with `{"correlation_id", "short_url"}` items |
| `GET` | `/<id>` | `307` redirect to the original URL; `410` if it was deleted, `400` if unknown |
| `GET` | `/ping` | `200 Live` if the database answers, otherwise `500` |
| `GET` | `/api/user/urls` | URLs of the current user as `{"short_url", "original_url"}` items; `204` if none |
| `DELETE` | `/api/user/urls` | JSON list of short identifiers; replies `202` and marks them deleted in the background, in batches of five |
| `GET` | `/api/internal/stats` | `{"urls": n, "users": n}`, only when the `X-Real-IP` header lies in the trusted subnet |

Users are identified by a signed `jwt` cookie. A request without a valid
cookie gets a new user ID and a cookie that expires after 60 seconds; a
cookie that fails verification and carries no user ID is answered with
`401`.

Request bodies sent with `Content-Encoding: gzip` are decompressed. JSON and
HTML replies are gzip-compressed when the request's `Accept-Encoding` header
is exactly `gzip`.

## Using it from Python

Building and running the web application:

```python
from urlshortener.app import build_app
from urlshortener.config import Config

app = build_app(Config(base_url="http://localhost:8080", storage_path="urls.json"))
try:
    app.run(host="localhost", port=8080)
finally:
    app.extensions["urlshortener.storage"].close()
```

`build_app` uses the `Config` as given; `urlshortener.config.load` and
`read_env` fill it from a configuration file, the environment and the
defaults.

The layers are usable on their own:

```python
from urlshortener.config import Config
from urlshortener.service import URLService
from urlshortener.storage import Storage

with Storage(Config(storage_path="urls.json")) as storage:
    service = URLService(storage)
    short = service.save_url("https://example.com/page", "user-1")
    assert service.get_url(short) == "https://example.com/page"
```

- `urlshortener.storage.Storage` — the file, the in-memory map and the
  optional database.
- `urlshortener.service.URLService` — `save_url`, `get_url`,
  `shorten_batch`, `get_user_urls`, `delete_urls`, `get_stats`, `ping_db`.
- `urlshortener.handler.Handler` — turns request bodies into `Reply`
  objects (status, body, content type, headers) without any web framework.
- `urlshortener.transport.Transport` — the Flask application, cookies and
  compression; `sign_user_token` and `parse_user_token` handle the tokens.
- `urlshortener.base62` — `encode` and `decode`.
- `urlshortener.errors` — `ShortenerError` and its subclasses.

## What it does not do

- Without a database, listing a user's URLs always answers `204`, statistics
  answer `400`, `/ping` answers `500`, and deletions have no effect.
- When the storage file is read at start, its records are indexed by original
  URL, so redirects only find short links created since the service started
  (or, with a database, those still in it and created in this run).
- There is no API documentation page and no profiling server.