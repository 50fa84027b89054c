"""Unit tests for the S3 object fetcher."""

import pytest

from fc_ingestion.core.exceptions import (
    FatalConfigError,
    MalformedPayloadError,
    NotFoundError,
    TransientError,
)
from fc_ingestion.integrations.s3_client import S3ObjectFetcher, normalize_records

from conftest import BUCKET, client_error


@pytest.mark.parametrize(
    "payload, expected",
    [
        ([{"a": 1}, {"b": 2}, {"c": 3}], [{"a": 1}, {"b": 2}, {"c": 3}]),
        ({"records": [{"a": 1}, {"b": 2}]}, [{"a": 1}, {"b": 2}]),
        ({"data": [{"a": 1}]}, [{"a": 1}]),
        ({"x": 1}, [{"x": 1}]),
        ([], []),
        (42, [42]),
    ],
)
def test_normalize_records_shapes(payload, expected):
    assert normalize_records(payload) == expected


def test_normalize_records_prefers_records_over_data():
    payload = {"records": [1], "data": [2, 3]}
    assert normalize_records(payload) == [1]


def test_normalize_records_non_list_records_field_is_single_record():
    payload = {"records": "not-a-list"}
    assert normalize_records(payload) == [payload]


@pytest.mark.asyncio
async def test_fetch_records_array(fetcher, s3_client):
    s3_client.put_json("a/b.json", [{"x": 1}, {"x": 2}])

    records = await fetcher.fetch_records("a/b.json")

    assert records == [{"x": 1}, {"x": 2}]


@pytest.mark.asyncio
async def test_fetch_records_missing_object_raises_not_found(fetcher):
    with pytest.raises(NotFoundError) as exc_info:
        await fetcher.fetch_records("missing.json")
    assert exc_info.value.key == "missing.json"


@pytest.mark.asyncio
async def test_fetch_records_empty_body_is_malformed(fetcher, s3_client):
    s3_client.objects["empty.json"] = b""

    with pytest.raises(MalformedPayloadError):
        await fetcher.fetch_records("empty.json")


@pytest.mark.asyncio
async def test_fetch_records_invalid_json_is_malformed(fetcher, s3_client):
    s3_client.objects["bad.json"] = b"{not json"

    with pytest.raises(MalformedPayloadError):
        await fetcher.fetch_records("bad.json")


@pytest.mark.asyncio
async def test_fetch_records_invalid_utf8_is_malformed(fetcher, s3_client):
    s3_client.objects["latin1.json"] = b'{"name": "\xe9t\xe9"}'

    with pytest.raises(MalformedPayloadError):
        await fetcher.fetch_records("latin1.json")


@pytest.mark.asyncio
async def test_fetch_records_access_denied_is_transient(fetcher, s3_client):
    s3_client.fail_with = client_error("AccessDenied", 403, "GetObject")

    with pytest.raises(TransientError):
        await fetcher.fetch_records("a/b.json")


@pytest.mark.asyncio
async def test_exists(fetcher, s3_client):
    s3_client.put_json("present.json", {"x": 1})

    assert await fetcher.exists("present.json") is True
    assert await fetcher.exists("absent.json") is False


@pytest.mark.asyncio
async def test_exists_propagates_other_errors(fetcher, s3_client):
    s3_client.fail_with = client_error("SlowDown", 503, "HeadObject")

    with pytest.raises(TransientError):
        await fetcher.exists("present.json")


@pytest.mark.asyncio
async def test_stat_reports_size_and_bucket(fetcher, s3_client):
    s3_client.put_json("a/b.json", [{"x": 1}])

    info = await fetcher.stat("a/b.json")

    assert info.key == "a/b.json"
    assert info.bucket == BUCKET
    assert info.size == len(s3_client.objects["a/b.json"])
    assert info.etag == "abc123"


@pytest.mark.asyncio
async def test_missing_bucket_is_fatal_config(s3_client):
    fetcher = S3ObjectFetcher(s3_client, None)

    with pytest.raises(FatalConfigError):
        await fetcher.fetch_records("a/b.json")


@pytest.mark.asyncio
async def test_empty_key_is_malformed(fetcher):
    with pytest.raises(MalformedPayloadError):
        await fetcher.exists("")
