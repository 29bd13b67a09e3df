"""TTL check status and its two wire vocabularies.

The agent accepts two spellings for the same three states:

    current   passing   warning   critical   (PUT /v1/agent/check/update/{id} body)
    legacy    pass      warn      fail       (PUT /v1/agent/check/{status}/{id} path)

Both are live on the wire, so both are first-class here. A single table
drives decoding and both encoders.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

from consul_agent.core.exceptions import StatusDecodeError


class TTLStatus(str, Enum):
    """Status of a TTL check."""

    PASSING = "passing"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def current(self) -> str:
        """Current-generation wire string."""
        return encode_current(self)

    @property
    def legacy(self) -> str:
        """Legacy wire string used in check path segments."""
        return encode_legacy(self)

    @classmethod
    def decode(cls, value: Any) -> TTLStatus:
        """Decode either vocabulary. See decode_status()."""
        return decode_status(value)


# status -> (current, legacy)
_ENCODINGS: dict[TTLStatus, tuple[str, str]] = {
    TTLStatus.PASSING: ("passing", "pass"),
    TTLStatus.WARNING: ("warning", "warn"),
    TTLStatus.CRITICAL: ("critical", "fail"),
}

_DECODINGS: dict[str, TTLStatus] = {
    wire: status
    for status, encodings in _ENCODINGS.items()
    for wire in encodings
}


def decode_status(value: Any) -> TTLStatus:
    """Decode a wire status string.

    Exactly six literals are accepted, case-sensitive and untrimmed:
    pass/passing, warn/warning, fail/critical. An already-decoded
    TTLStatus is returned unchanged.

    Raises:
        StatusDecodeError: For anything else, including non-strings.
    """
    if isinstance(value, TTLStatus):
        return value
    if not isinstance(value, str):
        raise StatusDecodeError(value)
    try:
        return _DECODINGS[value]
    except KeyError:
        raise StatusDecodeError(value) from None


def encode_current(status: TTLStatus) -> str:
    """Encode to passing/warning/critical."""
    return _ENCODINGS[status][0]


def encode_legacy(status: TTLStatus) -> str:
    """Encode to pass/warn/fail."""
    return _ENCODINGS[status][1]


TTLStatusField = Annotated[
    TTLStatus,
    BeforeValidator(decode_status),
    PlainSerializer(encode_current, return_type=str),
]
"""Pydantic field type: accepts either vocabulary, serializes the current one."""
