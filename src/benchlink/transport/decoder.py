"""Permissive decoding of ASCII replies into typed values.

Instruments sometimes answer a query with an error string instead of the
expected value, and polling clients refresh many readings per second. None of
these functions raise on malformed instrument output: each returns a
`Reading` whose value is the type's sentinel when the reply is empty or does
not parse.

=========  ==============  ======================
type       sentinel        status when returned
=========  ==============  ======================
str        ``""``          EMPTY
bool       ``False``       EMPTY / INVALID
int        INT_SENTINEL    EMPTY / INVALID
float      ``nan``         EMPTY / INVALID
=========  ==============  ======================

A literal ``NaN`` reply decodes to ``nan`` with status OK, so it can be told
apart from a parse failure by the status even though the values are equal.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Union

from benchlink.types import InstrumentIdentity, Reading, ReadStatus

INT_SENTINEL = -(2**31)

TRUE_WORDS = frozenset({"1", "ON", "YES"})
FALSE_WORDS = frozenset({"0", "OFF", "NO"})

_INT_RE = re.compile(r"[+-]?[0-9]+")

RawReply = Union[bytes, bytearray, str, None]


def decode_string(raw: RawReply) -> Reading[str]:
    """UTF-8 decode and trim. Undecodable bytes are replaced, not raised."""
    if not raw:
        return Reading("", ReadStatus.EMPTY)
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = raw
    text = text.strip()
    if not text:
        return Reading("", ReadStatus.EMPTY)
    return Reading(text)


def decode_bool(raw: RawReply) -> Reading[bool]:
    """`1`, `ON`, `YES` (any case) are True; everything else is False."""
    s = decode_string(raw)
    if not s.ok:
        return Reading(False, s.status)
    word = s.value.upper()
    if word in TRUE_WORDS:
        return Reading(True)
    if word in FALSE_WORDS:
        return Reading(False)
    return Reading(False, ReadStatus.INVALID)


def decode_int(raw: RawReply) -> Reading[int]:
    """Base-10 integer, optionally signed."""
    s = decode_string(raw)
    if not s.ok:
        return Reading(INT_SENTINEL, s.status)
    if not _INT_RE.fullmatch(s.value):
        return Reading(INT_SENTINEL, ReadStatus.INVALID)
    return Reading(int(s.value))


def decode_float(raw: RawReply) -> Reading[float]:
    s = decode_string(raw)
    if not s.ok:
        return Reading(math.nan, s.status)
    # float() accepts digit separators, instruments never send them
    if "_" in s.value:
        return Reading(math.nan, ReadStatus.INVALID)
    try:
        return Reading(float(s.value))
    except ValueError:
        return Reading(math.nan, ReadStatus.INVALID)


def parse_identity(reply: Optional[str]) -> Optional[InstrumentIdentity]:
    """Split an `*IDN?` reply into its four fields.

    The firmware field is last and may itself contain commas, so the reply is
    split at most three times. Fewer than four fields gives None.
    """
    if not reply or not reply.strip():
        return None
    parts = [p.strip() for p in reply.strip().split(",", 3)]
    if len(parts) < 4:
        return None
    return InstrumentIdentity(*parts)
