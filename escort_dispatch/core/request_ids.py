"""Request id helpers.

Request ids look like ``B-02-24``: month letter (A = January .. L = December),
a per-month sequence of at least two digits, and a two-digit year.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date

_MONTH_LETTERS = "ABCDEFGHIJKL"
_LOOSE_RE = re.compile(r"^([A-La-l])-(\d+)-(\d{2})$")
_STRICT_RE = re.compile(r"^[A-L]-\d{2,}-\d{2}$")


def normalize_request_id(raw: object) -> str:
    """Canonicalize a request id: ``b-2-24`` → ``B-02-24``.

    Surrounding quotes and whitespace are stripped. Strings that don't look
    like a request id are returned trimmed but otherwise unchanged.
    """
    text = str(raw or "").strip().strip('"').strip()
    match = _LOOSE_RE.match(text)
    if not match:
        return text
    letter, seq, year = match.groups()
    return f"{letter.upper()}-{int(seq):02d}-{year}"


def is_valid_request_id(value: object) -> bool:
    return bool(_STRICT_RE.match(str(value or "")))


def request_id_key(value: object) -> str:
    """Lookup key used to compare ids read from different tables."""
    return normalize_request_id(value).lower()


def generate_request_id(existing_ids: Iterable[object], today: date | None = None) -> str:
    """Return the next free id for today's month."""
    today = today or date.today()
    letter = _MONTH_LETTERS[today.month - 1]
    year = f"{today.year % 100:02d}"

    highest = 0
    for raw in existing_ids:
        match = _LOOSE_RE.match(str(raw or "").strip())
        if match and match.group(1).upper() == letter and match.group(3) == year:
            highest = max(highest, int(match.group(2)))

    return f"{letter}-{highest + 1:02d}-{year}"
