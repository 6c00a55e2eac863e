"""JSON wire codec for the debug-sampling allow-list.

Payload shape:
    {"configs": [{"csid": "<session id>", "deadline": <epoch seconds>}, ...]}
"""

from __future__ import annotations

import json
from typing import Any

from samplegate.allowlist import AllowListEntry, Configuration


class DecodeError(ValueError):
    """Raised when raw bytes do not hold a valid allow-list payload."""


def decode(data: bytes | str) -> Configuration:
    """Parse a raw payload into a Configuration. Raises DecodeError on bad input."""
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not valid UTF-8: {e}") from e
    else:
        text = data
    if not text.strip():
        raise DecodeError("Empty payload")

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError) as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise DecodeError("Payload nested too deeply") from e

    if not isinstance(parsed, dict):
        raise DecodeError("Top-level payload must be an object")
    records = parsed.get("configs")
    if not isinstance(records, list):
        raise DecodeError("Payload missing 'configs' list")

    return Configuration(tuple(_parse_entry(i, r) for i, r in enumerate(records)))


def _parse_entry(index: int, record: Any) -> AllowListEntry:
    if not isinstance(record, dict):
        raise DecodeError(f"configs[{index}] must be an object")
    csid = record.get("csid")
    deadline = record.get("deadline")
    if not isinstance(csid, str):
        raise DecodeError(f"configs[{index}].csid must be a string")
    # bool is an int subclass; reject it explicitly
    if isinstance(deadline, bool) or not isinstance(deadline, int):
        raise DecodeError(f"configs[{index}].deadline must be an integer")
    return AllowListEntry(csid=csid, deadline=deadline)


def encode(config: Configuration) -> bytes:
    """Serialize a Configuration to the wire payload."""
    payload = {
        "configs": [{"csid": e.csid, "deadline": e.deadline} for e in config.entries]
    }
    return json.dumps(payload).encode("utf-8")
