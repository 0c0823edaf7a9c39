"""
Boundary decoder for negotiation-log batches.

This module provides:
- validate_batch_shape(payload) -> list of shape errors (JSON Schema)
- decode_records(payload, policy=None) -> (records, issues)

The upstream API is untrusted: every record is decoded into a typed LogRecord.
What happens to a record that fails decoding is decided by the policy:
- "reject" (default): the whole batch fails with MalformedRecordError
- "skip": the record is dropped and reported back as an issue

A payload that is not a JSON array of objects is rejected under either policy.
"""

import os
import json
import pathlib
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator
from pydantic import ValidationError

from backend.schemas import LogRecord, RecordIssue
from backend import monitoring

ROOT = pathlib.Path(__file__).resolve().parents[1]
SCHEMA_PATH = ROOT.joinpath("schemas", "log_records_schema.json")

POLICY_REJECT = "reject"
POLICY_SKIP = "skip"
POLICIES = (POLICY_REJECT, POLICY_SKIP)

MALFORMED_RECORD_POLICY = os.getenv("MALFORMED_RECORD_POLICY", POLICY_REJECT).strip().lower()

# load batch schema
try:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        BATCH_SCHEMA = json.load(f)
except Exception:
    BATCH_SCHEMA = {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "array",
        "items": {"type": "object"},
    }

_batch_validator = Draft7Validator(BATCH_SCHEMA)


class MalformedRecordError(ValueError):
    """Raised when a batch cannot be decoded under the active policy."""

    def __init__(self, message: str, issues: Optional[List[RecordIssue]] = None):
        super().__init__(message)
        self.issues = issues or []

    def details(self) -> Dict[str, Any]:
        return {"issues": [i.model_dump() for i in self.issues]}


def validate_batch_shape(payload: Any) -> List[str]:
    """Return a list of human readable shape errors; empty when the payload is an array of objects."""
    errors = []
    for err in sorted(_batch_validator.iter_errors(payload), key=lambda e: list(e.path)):
        where = "/".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{where}: {err.message}")
    return errors


def _issues_from_validation(index: int, raw: Dict[str, Any], exc: ValidationError) -> List[RecordIssue]:
    issues = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or None
        issues.append(RecordIssue(index=index, id=raw.get("id"), field=loc, message=e.get("msg", "invalid value")))
    return issues


def decode_records(payload: Any, policy: Optional[str] = None) -> Tuple[List[LogRecord], List[RecordIssue]]:
    """
    Decode a raw JSON payload into LogRecords.

    Returns:
      (records, issues) where issues lists the records dropped under the "skip" policy.

    Raises:
      MalformedRecordError when the payload shape is wrong, or when any record
      is invalid under the "reject" policy.
    """
    policy = (policy or MALFORMED_RECORD_POLICY).lower()
    if policy not in POLICIES:
        raise ValueError(f"Unknown malformed record policy: {policy}. Supported: {', '.join(POLICIES)}")

    shape_errors = validate_batch_shape(payload)
    if shape_errors:
        monitoring.inc_malformed_record("batch_shape")
        raise MalformedRecordError(
            "Upstream payload is not an array of log records",
            [RecordIssue(index=-1, message=m) for m in shape_errors],
        )

    records: List[LogRecord] = []
    issues: List[RecordIssue] = []
    for index, raw in enumerate(payload):
        try:
            records.append(LogRecord.model_validate(raw))
        except ValidationError as e:
            found = _issues_from_validation(index, raw, e)
            for issue in found:
                monitoring.inc_malformed_record(issue.field or "unknown")
            issues.extend(found)

    if issues and policy == POLICY_REJECT:
        raise MalformedRecordError(f"{len(issues)} invalid field(s) in upstream records", issues)

    if issues:
        monitoring.logger.warning(
            "Skipped malformed log records",
            extra={"skipped": len({i.index for i in issues}), "kept": len(records)},
        )
    return records, issues
