# tests/test_normalizer.py

from __future__ import annotations

import pytest

from taskhub.ingestion import normalizer
from taskhub.pipeline.errors import InvalidIdentifier, MalformedPayload


def _record(**overrides):
    base = {"id": "7", "title": "a", "description": "d", "completed": False}
    base.update(overrides)
    return base


def test_parse_returns_records_from_json_array() -> None:
    raw = b'[{"id": "7", "title": "a", "description": "d", "completed": false}]'
    assert normalizer.parse(raw) == [_record()]


def test_parse_tolerates_utf8_bom() -> None:
    raw = b"\xef\xbb\xbf[]"
    assert normalizer.parse(raw) == []


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b'{"id": 1}',
        b'"just a string"',
        b"[1, 2, 3]",
        b'[{"id": 1}, "oops"]',
        b"\xff\xfe\x00garbage",
    ],
)
def test_parse_rejects_non_record_payloads(raw: bytes) -> None:
    with pytest.raises(MalformedPayload):
        normalizer.parse(raw)


@pytest.mark.parametrize(
    ("raw_id", "expected"),
    [
        ("7", 7),
        (" 8 ", 8),
        ("+9", 9),
        (10, 10),
        (11.0, 11),
        ("2147483647", 2**31 - 1),
    ],
)
def test_normalize_id_coerces_integer_like_values(raw_id, expected) -> None:
    assert normalizer.normalize_id({"id": raw_id}) == expected


@pytest.mark.parametrize(
    "raw_id",
    ["x", "7abc", "", "1.5", 7.5, True, None, [], {}, 0, -3, 2**31, "9" * 5000],
)
def test_normalize_id_rejects_non_coercible_values(raw_id) -> None:
    with pytest.raises(InvalidIdentifier) as excinfo:
        normalizer.normalize_id({"id": raw_id}, index=4)
    assert excinfo.value.record_index == 4


def test_normalize_id_rejects_missing_id() -> None:
    with pytest.raises(InvalidIdentifier, match="no 'id' field"):
        normalizer.normalize_id({"title": "a"})


def test_normalize_batch_keeps_unknown_fields_as_extra() -> None:
    [record] = normalizer.normalize_batch([_record(priority="high", tags=["x"])])

    assert record.id == 7
    assert record.to_row() == {
        "id": 7,
        "title": "a",
        "description": "d",
        "completed": False,
        "extra": {"priority": "high", "tags": ["x"]},
    }


def test_normalize_batch_aborts_on_first_bad_id() -> None:
    records = [_record(id="1"), _record(id="x"), _record(id="3")]

    with pytest.raises(InvalidIdentifier) as excinfo:
        normalizer.normalize_batch(records)

    assert excinfo.value.record_index == 1
    assert excinfo.value.raw_id == "x"


def test_normalize_batch_requires_task_fields() -> None:
    records = [_record(), {"id": 2, "title": "no description", "completed": True}]

    with pytest.raises(MalformedPayload, match="Record 1"):
        normalizer.normalize_batch(records)


def test_normalize_batch_rejects_wrongly_typed_fields() -> None:
    with pytest.raises(MalformedPayload):
        normalizer.normalize_batch([_record(completed="definitely")])
