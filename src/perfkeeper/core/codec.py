"""Key codec between records and key-value store entries.

Keys have the form::

    <kind>|<field>|<value>|...|END|<SCHEMA>

Only non-absent key fields appear, in the kind's declared order. The key is
used for pattern matching only; the JSON value is the authoritative field set.
"""

import json
from typing import Any

from perfkeeper.core.exceptions import InvalidRecord, MalformedRecord
from perfkeeper.core.models import RECORD_TYPES, SCHEMA, Record, RecordKind

DELIMITER = "|"
END = "END"


def build_key(kind: RecordKind, key_fields: tuple[str, ...], values: dict[str, Any]) -> str:
    """Build the store key for a set of field values.

    Args:
        kind: Record kind, written as the key prefix.
        key_fields: Field names to embed, in order.
        values: Field values; ``None`` or missing fields are skipped.

    Returns:
        The delimited key string terminated by ``END`` and the schema tag.

    Raises:
        InvalidRecord: If a value contains the delimiter. Values are never escaped.
    """
    parts = [str(kind)]
    for name in key_fields:
        value = values.get(name)
        if value is None:
            continue
        text = str(value)
        if DELIMITER in text:
            raise InvalidRecord(f"{name} must not contain {DELIMITER!r}: {text!r}")
        parts.extend((name, text))
    parts.extend((END, SCHEMA))
    return DELIMITER.join(parts)


def encode(record: Record) -> tuple[str, bytes]:
    """Encode a record into its store key and JSON value.

    Raises:
        InvalidRecord: If a key field contains the delimiter or a value is
            not JSON serializable.
    """
    values = record.to_fields()
    key = build_key(record.kind, record.key_fields, values)
    try:
        payload = json.dumps(values)
    except (TypeError, ValueError) as e:
        raise InvalidRecord(f"{record.kind} record is not JSON serializable: {e}") from e
    return key, payload.encode()


def kind_of(key: str) -> RecordKind:
    """Return the record kind encoded in a key's prefix.

    Raises:
        MalformedRecord: If the prefix is not a known kind.
    """
    prefix = key.split(DELIMITER, 1)[0]
    try:
        return RecordKind(prefix)
    except ValueError as e:
        raise MalformedRecord(f"unknown record kind in key: {key!r}") from e


def decode(key: str, value: str | bytes | None) -> dict[str, Any]:
    """Decode a stored value into its field dict.

    Args:
        key: The store key (unused for field reconstruction).
        value: JSON payload as returned by the store.

    Raises:
        MalformedRecord: If the value is missing, not JSON, or not an object.
    """
    if value is None:
        raise MalformedRecord(f"no value stored for {key!r}")
    try:
        data = json.loads(value)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedRecord(f"invalid JSON for {key!r}: {e}") from e
    if not isinstance(data, dict):
        raise MalformedRecord(f"expected a JSON object for {key!r}")
    return data


def decode_record(key: str, value: str | bytes | None) -> Record:
    """Decode a key/value pair into its typed record variant.

    Raises:
        MalformedRecord: On an unknown kind, a stale schema tag, or bad payload.
    """
    if not key.endswith(f"{DELIMITER}{END}{DELIMITER}{SCHEMA}"):
        raise MalformedRecord(f"key does not carry schema {SCHEMA}: {key!r}")
    record_type = RECORD_TYPES[kind_of(key)]
    return record_type.from_fields(decode(key, value))
