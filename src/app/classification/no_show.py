"""Detection of explicit non-attendance language in event text.

Only unambiguous phrasings are listed. A match forces attendance to False
and the paid amount to 0, so a missed detection is preferred over a false
one. "no llegó" is not listed: the same words describe transfers that have
not arrived yet.
"""

from __future__ import annotations

import re

from app.schemas.internal import EventSnapshot

# Ordering matters: earlier matches win.
NO_SHOW_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\bno\s+(?:vino|vinieron|vine)\b", re.IGNORECASE),
    re.compile(r"\bno\s+(?:asisti[oó]|asistieron)\b", re.IGNORECASE),
    re.compile(r"\bno\s+se\s+present[oó]\b", re.IGNORECASE),
    re.compile(r"\bno\s+(?:asistir[aá]|vendr[aá])\b", re.IGNORECASE),
    re.compile(
        r"\bno\s+(?:podr[aá]|podr[ií]a|puede|pudo)\s+(?:asistir|venir)\b", re.IGNORECASE
    ),
    re.compile(r"\bno\s+(?:va|iba)\s+a\s+poder\s+(?:asistir|venir)\b", re.IGNORECASE),
    re.compile(r"\binasistencia\b", re.IGNORECASE),
]


def explicit_no_show_pattern(event: EventSnapshot) -> re.Pattern[str] | None:
    """Return the first pattern that matches the event text, if any."""
    text = event.text
    for pattern in NO_SHOW_PATTERNS:
        if pattern.search(text):
            return pattern
    return None


def is_explicit_no_show(event: EventSnapshot) -> bool:
    """True when the summary or description states the patient did not attend."""
    return explicit_no_show_pattern(event) is not None
