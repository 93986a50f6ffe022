"""Service configuration from flags, a JSON file and the environment."""

from __future__ import annotations

import argparse
import json
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

DEFAULT_SERVER_ADDR = "localhost:8080"
DEFAULT_STORAGE_PATH = "urls.json"

_ENV_FIELDS = (
    ("server_addr", "SERVER_ADDRESS"),
    ("base_url", "BASE_URL"),
    ("storage_path", "FILE_STORAGE_PATH"),
    ("db_address", "DATABASE_DSN"),
    ("config", "CONFIG"),
    ("trusted_subnet", "TRUSTED_SUBNET"),
)

_JSON_FIELDS = (
    ("server_addr", "ServerAddr"),
    ("base_url", "BaseURL"),
    ("storage_path", "StoragePath"),
    ("db_address", "DBAddress"),
    ("trusted_subnet", "TrustedSubnet"),
)

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


@dataclass
class Config:
    """Settings of the shortener service."""

    server_addr: str = ""
    base_url: str = ""
    storage_path: str = ""
    db_address: str = ""
    config: str = ""
    https: bool = False
    trusted_subnet: str = ""


def _parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {value!r}")


def read_env(cfg: Config, environ: Mapping[str, str] | None = None) -> Config:
    """Override settings from non-empty environment variables and fill defaults."""
    env = os.environ if environ is None else environ
    https = env.get("HTTPS", "")
    if https:
        cfg.https = _parse_bool(https)
    for attr, name in _ENV_FIELDS:
        value = env.get(name, "")
        if value:
            setattr(cfg, attr, value)

    if not cfg.server_addr:
        cfg.server_addr = DEFAULT_SERVER_ADDR
    if not cfg.base_url:
        cfg.base_url = "http://" + cfg.server_addr
    if not cfg.storage_path:
        cfg.storage_path = DEFAULT_STORAGE_PATH
    return cfg


def _apply_json(cfg: Config, data: object) -> None:
    if data is None:
        return
    if not isinstance(data, dict):
        raise ValueError("configuration file must hold a JSON object")
    string_fields = {key.lower(): attr for attr, key in _JSON_FIELDS}
    values: dict[str, object] = {}
    for key, value in data.items():
        folded = key.lower()
        if value is None:
            continue
        if folded == "https":
            if not isinstance(value, bool):
                raise ValueError(f"field {key!r} must be a boolean")
            values["https"] = value
        elif folded in string_fields:
            if not isinstance(value, str):
                raise ValueError(f"field {key!r} must be a string")
            values[string_fields[folded]] = value

    for attr, _ in _JSON_FIELDS:
        if values.get(attr):
            setattr(cfg, attr, values[attr])
    if values.get("https"):
        cfg.https = True


def load(cfg: Config, environ: Mapping[str, str] | None = None) -> Config:
    """Merge the JSON file named by cfg.config, then the environment, into cfg."""
    if cfg.config:
        with open(cfg.config, encoding="utf-8") as handle:
            data = json.load(handle)
        _apply_json(cfg, data)
    return read_env(cfg, environ)


def parse_flags(argv: Sequence[str] | None = None) -> Config:
    """Build a Config from command-line flags."""
    parser = argparse.ArgumentParser(description="URL shortener service")
    parser.add_argument("-a", dest="server_addr", default="", help="HTTP server host address")
    parser.add_argument(
        "-b", dest="base_url", default="", help="Base HTTP address returned before short URL"
    )
    parser.add_argument("-f", dest="storage_path", default="", help="Storage file path for URLs")
    parser.add_argument("-d", dest="db_address", default="", help="Database connection.")
    parser.add_argument("-c", dest="config", default="", help="Config in JSON format")
    parser.add_argument("-t", dest="config", default="", help="Trusted Subnet")
    parser.add_argument(
        "-s", dest="https", action="store_true", help="Enable HTTPS server (true/false)"
    )
    args = parser.parse_args(argv)
    return Config(
        server_addr=args.server_addr,
        base_url=args.base_url,
        storage_path=args.storage_path,
        db_address=args.db_address,
        config=args.config,
        https=args.https,
    )