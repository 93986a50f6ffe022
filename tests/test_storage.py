import pytest

from urlshortener import base62
from urlshortener.config import Config
from urlshortener.errors import (
    DuplicateURLError,
    NoDatabaseError,
    URLDeletedError,
    URLNotFoundError,
)
from urlshortener.models import (
    BatchUnitURLRequest,
    DeleteRecord,
    Stats,
    URLRecord,
    UserURLResponse,
)
from urlshortener.storage import Storage


@pytest.fixture
def cfg(tmp_path):
    return Config(
        storage_path=str(tmp_path / "urls.json"),
        db_address="sqlite:///" + (tmp_path / "urls.db").as_posix(),
    )


@pytest.fixture
def store(cfg):
    with Storage(cfg) as storage:
        yield storage


@pytest.fixture
def file_cfg(tmp_path):
    return Config(storage_path=str(tmp_path / "urls.json"))


def _record(url, user_id="user-1"):
    return URLRecord(user_id=user_id, short_url=base62.encode(url.encode()), original_url=url)


def test_file_only_storage_has_no_database(file_cfg):
    with Storage(file_cfg) as storage:
        assert storage.urls == {}
        assert storage.ping_db() is False
        with pytest.raises(NoDatabaseError):
            storage.save(_record("https://ethereum.org"))


def test_append_record_writes_json_line(file_cfg, tmp_path):
    record = URLRecord(user_id="u1", short_url="abc", original_url="https://example.com")
    with Storage(file_cfg) as storage:
        storage.append_record(record)
        assert storage.urls["abc"] == record
    content = (tmp_path / "urls.json").read_text(encoding="utf-8")
    assert content == (
        '{"user_id":"u1","short_url":"abc","original_url":"https://example.com","deleted":false}\n'
    )


def test_append_record_escapes_html_characters(file_cfg, tmp_path):
    record = URLRecord(short_url="x", original_url="https://example.com/?a=1&b=<2>")
    with Storage(file_cfg) as storage:
        storage.append_record(record)
    content = (tmp_path / "urls.json").read_text(encoding="utf-8")
    assert "&" not in content and "<" not in content
    with Storage(file_cfg) as storage:
        assert storage.urls[record.original_url] == record


def test_records_reload_keyed_by_original_url(file_cfg):
    record = _record("https://example.com/page")
    with Storage(file_cfg) as storage:
        storage.append_record(record)
    with Storage(file_cfg) as storage:
        assert storage.urls == {"https://example.com/page": record}


def test_invalid_file_line_raises(file_cfg, tmp_path):
    (tmp_path / "urls.json").write_text("not json\n", encoding="utf-8")
    with pytest.raises(ValueError):
        Storage(file_cfg)


def test_ping_with_database(store):
    assert store.ping_db() is True


def test_save_and_get(store):
    record = _record("https://example.org/doc")
    store.save(record)
    assert store.get(record.short_url) == "https://example.org/doc"


def test_save_duplicate_raises(store):
    record = _record("https://example.org/doc")
    store.save(record)
    with pytest.raises(DuplicateURLError):
        store.save(_record("https://example.org/doc", user_id="user-2"))


def test_get_missing_raises(store):
    with pytest.raises(URLNotFoundError):
        store.get("missing")


def test_save_batch_and_get_multiple(store):
    urls = ["https://ethereum.org", "https://docs.soliditylang.org"]
    with store.transaction() as conn:
        store.save_batch(
            conn,
            "user-1",
            [BatchUnitURLRequest(correlation_id=str(i), original_url=u) for i, u in enumerate(urls)],
        )
    result = store.get_multiple("user-1")
    expected = [UserURLResponse(short_url=base62.encode(u.encode()), original_url=u) for u in urls]
    assert sorted(result, key=lambda r: r.original_url) == sorted(expected, key=lambda r: r.original_url)
    assert store.get_multiple("user-2") == []


def test_transaction_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            store.save_batch(conn, "user-1", [BatchUnitURLRequest(original_url="https://ethereum.org")])
            raise RuntimeError("abort")
    assert store.get_multiple("user-1") == []


def test_delete_marks_only_owner_urls(store):
    mine = _record("https://ethereum.org", user_id="user-1")
    theirs = _record("https://example.org/doc", user_id="user-2")
    store.save(mine)
    store.save(theirs)
    with store.transaction() as conn:
        store.delete(
            conn,
            [
                DeleteRecord(user_id="user-1", short_url=mine.short_url),
                DeleteRecord(user_id="user-1", short_url=theirs.short_url),
            ],
        )
    with pytest.raises(URLDeletedError):
        store.get(mine.short_url)
    assert store.get(theirs.short_url) == "https://example.org/doc"


def test_stats_counts_distinct(store):
    store.save(_record("https://ethereum.org", user_id="user-1"))
    store.save(_record("https://example.org/doc", user_id="user-1"))
    store.save(_record("https://docs.soliditylang.org", user_id="user-2"))
    assert store.stats() == Stats(urls=3, users=2)


def test_stats_without_database_raises(file_cfg):
    with Storage(file_cfg) as storage:
        with pytest.raises(NoDatabaseError):
            storage.stats()