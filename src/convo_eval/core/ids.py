"""Identifier helpers: nonces, fresh uuids and deterministic scenario request ids."""

import re
import uuid

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def new_id() -> str:
    return str(uuid.uuid4())


def make_nonce() -> str:
    """Return a 14-char alphanumeric nonce suitable for emails and passwords."""
    return _NON_ALNUM.sub("", str(uuid.uuid4()))[:14]


def alphanumeric(value: str) -> str:
    return _NON_ALNUM.sub("", value)


def is_uuid_like(value: object) -> bool:
    return bool(_UUID_PATTERN.match(str(value if value is not None else "")))


def scenario_request_id(batch_request_id: str, dataset_key: str, scenario_id: str) -> str:
    """Deterministic idempotency key for one scenario within one batch.

    Re-invoking a batch with the same batch_request_id yields the same key, which
    is what lets the orchestrator find and resume an interrupted run row.
    """
    return f"{batch_request_id}:{dataset_key}:{scenario_id}"
