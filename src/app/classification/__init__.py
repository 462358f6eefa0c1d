"""Calendar event classification.

Deterministic, local classification of clinic appointments into billing
metadata. Rule-based (no network calls) so bulk reclassification can replay
it over the whole event history and converge on the same result.
"""

from .classifier import Classifier, classify
from .metadata import is_ignored_event, parse_calendar_metadata
from .no_show import is_explicit_no_show
from .normalize import is_category, normalize_category

__all__ = [
    "Classifier",
    "classify",
    "is_category",
    "is_explicit_no_show",
    "is_ignored_event",
    "normalize_category",
    "parse_calendar_metadata",
]
