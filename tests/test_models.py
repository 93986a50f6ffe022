import pytest

from urlshortener.models import (
    BatchUnitURLRequest,
    BatchUnitURLResponse,
    DeleteRecord,
    ShortenURLRequest,
    ShortenURLResponse,
    Stats,
    URLRecord,
    UserURLResponse,
)


def test_shorten_request_round_trip():
    req = ShortenURLRequest(url="https://example.org/doc")
    assert ShortenURLRequest.from_dict(req.to_dict()) == req


def test_shorten_request_missing_field_defaults_to_empty():
    assert ShortenURLRequest.from_dict({}).url == ""


def test_shorten_request_null_is_ignored():
    assert ShortenURLRequest.from_dict(None) == ShortenURLRequest()


def test_shorten_request_keys_match_case_insensitively():
    assert ShortenURLRequest.from_dict({"URL": "https://ethereum.org"}).url == "https://ethereum.org"


def test_shorten_request_wrong_type_raises():
    with pytest.raises(ValueError):
        ShortenURLRequest.from_dict({"url": 5})


def test_non_object_raises():
    with pytest.raises(ValueError):
        BatchUnitURLRequest.from_dict(["https://ethereum.org"])


def test_batch_request_round_trip_and_keys():
    req = BatchUnitURLRequest(correlation_id="1", original_url="https://ethereum.org", user_id="u")
    data = req.to_dict()
    assert list(data) == ["correlation_id", "original_url", "user_id"]
    assert BatchUnitURLRequest.from_dict(data) == req


def test_batch_request_ignores_unknown_keys():
    req = BatchUnitURLRequest.from_dict({"correlation_id": "2", "extra": 1})
    assert req == BatchUnitURLRequest(correlation_id="2")


def test_url_record_round_trip():
    rec = URLRecord(user_id="u", short_url="abc", original_url="https://ethereum.org", deleted=True)
    assert URLRecord.from_dict(rec.to_dict()) == rec


def test_url_record_deleted_must_be_bool():
    with pytest.raises(ValueError):
        URLRecord.from_dict({"deleted": "yes"})


def test_response_keys():
    assert BatchUnitURLResponse(correlation_id="1", short_url="s").to_dict() == {
        "correlation_id": "1",
        "short_url": "s",
    }
    assert ShortenURLResponse(result="r").to_dict() == {"result": "r"}
    assert UserURLResponse(short_url="s", original_url="o").to_dict() == {
        "short_url": "s",
        "original_url": "o",
    }
    assert DeleteRecord(user_id="u", short_url="s").to_dict() == {"user_id": "u", "short_url": "s"}
    assert Stats(urls=3, users=2).to_dict() == {"urls": 3, "users": 2}