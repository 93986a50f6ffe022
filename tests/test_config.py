import json

import pytest

from urlshortener.config import Config, load, parse_flags, read_env


def test_read_env_fills_defaults():
    cfg = read_env(Config(), {})
    assert cfg.server_addr == "localhost:8080"
    assert cfg.base_url == "http://localhost:8080"
    assert cfg.storage_path == "urls.json"
    assert cfg.https is False


def test_read_env_overrides_from_environment():
    env = {
        "SERVER_ADDRESS": "127.0.0.1:9000",
        "FILE_STORAGE_PATH": "data.json",
        "DATABASE_DSN": "sqlite:///x.db",
        "TRUSTED_SUBNET": "10.0.0.0/8",
        "HTTPS": "true",
    }
    cfg = read_env(Config(server_addr="ignored:1"), env)
    assert cfg.server_addr == "127.0.0.1:9000"
    assert cfg.base_url == "http://127.0.0.1:9000"
    assert cfg.storage_path == "data.json"
    assert cfg.db_address == "sqlite:///x.db"
    assert cfg.trusted_subnet == "10.0.0.0/8"
    assert cfg.https is True


def test_read_env_empty_variable_keeps_value():
    cfg = read_env(Config(base_url="http://short.example.com"), {"BASE_URL": ""})
    assert cfg.base_url == "http://short.example.com"


def test_read_env_invalid_bool_raises():
    with pytest.raises(ValueError):
        read_env(Config(), {"HTTPS": "maybe"})


def test_load_merges_json_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "BaseURL": "http://short.example.com",
                "serveraddr": "0.0.0.0:8081",
                "StoragePath": "stored.json",
                "HTTPS": True,
                "TrustedSubnet": "192.168.0.0/16",
            }
        ),
        encoding="utf-8",
    )
    cfg = load(Config(config=str(path)), {})
    assert cfg.base_url == "http://short.example.com"
    assert cfg.server_addr == "0.0.0.0:8081"
    assert cfg.storage_path == "stored.json"
    assert cfg.trusted_subnet == "192.168.0.0/16"
    assert cfg.https is True


def test_load_environment_wins_over_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ServerAddr": "0.0.0.0:8081"}), encoding="utf-8")
    cfg = load(Config(config=str(path)), {"SERVER_ADDRESS": "127.0.0.1:9000"})
    assert cfg.server_addr == "127.0.0.1:9000"


def test_load_empty_file_values_keep_existing(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"StoragePath": ""}), encoding="utf-8")
    cfg = load(Config(config=str(path), storage_path="keep.json"), {})
    assert cfg.storage_path == "keep.json"


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load(Config(config=str(tmp_path / "absent.json")), {})


def test_load_invalid_json_raises(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load(Config(config=str(path)), {})


def test_load_wrong_type_raises(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"HTTPS": "yes"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load(Config(config=str(path)), {})


def test_parse_flags():
    cfg = parse_flags(
        ["-a", "127.0.0.1:9000", "-b", "http://short.example.com", "-f", "store.json",
         "-d", "sqlite:///x.db", "-c", "cfg.json", "-s"]
    )
    assert cfg == Config(
        server_addr="127.0.0.1:9000",
        base_url="http://short.example.com",
        storage_path="store.json",
        db_address="sqlite:///x.db",
        config="cfg.json",
        https=True,
    )


def test_parse_flags_defaults():
    assert parse_flags([]) == Config()


def test_parse_flags_unknown_flag_exits():
    with pytest.raises(SystemExit):
        parse_flags(["-z"])