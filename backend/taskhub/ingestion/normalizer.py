"""
Record normalizer — turns uploaded bytes into validated task records.

    parse(raw)              bytes  -> list of candidate dicts
    normalize_id(record)    dict   -> int
    normalize_batch(recs)   dicts  -> list[TaskRecord]

Any failing record aborts the whole batch: nothing from a file with one
bad record reaches the store.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from taskhub.core.constants import MAX_TASK_ID, MIN_TASK_ID
from taskhub.pipeline.errors import InvalidIdentifier, MalformedPayload

CandidateRecord = dict[str, Any]

_INT_LITERAL = re.compile(r"[+-]?\d+")


class TaskRecord(BaseModel):
    """A normalized record, ready for upsert.  Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str
    description: str
    completed: bool

    def to_row(self) -> dict[str, Any]:
        """Shape expected by the gateway: known columns plus `extra`."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "extra": dict(self.model_extra or {}),
        }


def parse(raw: bytes) -> list[CandidateRecord]:
    """Decode a UTF-8 JSON array of objects."""
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedPayload(f"Payload is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayload(f"Payload is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise MalformedPayload(
            f"Payload must be a JSON array of records, got {type(data).__name__}"
        )

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedPayload(
                f"Record {index} is not an object ({type(item).__name__})",
                details={"record_index": index},
            )
    return data


def normalize_id(record: Mapping[str, Any], *, index: int | None = None) -> int:
    """
    Coerce `record["id"]` to a task id.

    Accepted: ints, integral floats (7.0) and base-10 integer strings
    (" 7 ", "+7").  Rejected: missing ids, booleans, "7abc", "x", 7.5,
    and anything outside the positive 32-bit key range.
    """
    where = f"Record {index}" if index is not None else "Record"

    if "id" not in record:
        raise InvalidIdentifier(f"{where} has no 'id' field", record_index=index)

    raw = record["id"]
    value: int | None = None

    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        value = int(raw) if raw.is_integer() else None
    elif isinstance(raw, str):
        candidate = raw.strip()
        if _INT_LITERAL.fullmatch(candidate):
            try:
                value = int(candidate)
            except ValueError:
                # Past the interpreter's int-conversion digit limit.
                value = None

    if value is None:
        raise InvalidIdentifier(
            f"{where} has a non-integer id: {raw!r}",
            record_index=index,
            raw_id=raw,
        )
    if not MIN_TASK_ID <= value <= MAX_TASK_ID:
        raise InvalidIdentifier(
            f"{where} id {value} is outside {MIN_TASK_ID}..{MAX_TASK_ID}",
            record_index=index,
            raw_id=raw,
        )
    return value


def _format_validation_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


def normalize_batch(records: Sequence[Mapping[str, Any]]) -> list[TaskRecord]:
    """Normalize every record or raise on the first bad one."""
    normalized: list[TaskRecord] = []
    for index, record in enumerate(records):
        task_id = normalize_id(record, index=index)
        try:
            normalized.append(TaskRecord.model_validate({**record, "id": task_id}))
        except ValidationError as exc:
            raise MalformedPayload(
                f"Record {index} (id={task_id}) is invalid: {_format_validation_errors(exc)}",
                details={"record_index": index, "task_id": task_id},
            ) from exc
    return normalized
