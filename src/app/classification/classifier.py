"""Deterministic classification of a calendar event.

``classify`` merges a user override with the event baseline into the
record that gets persisted. Evaluation order is fixed and each step only
uses the outputs of earlier steps:

1. category (override, else baseline; known labels rewritten to canonical)
2. category rule lookup
3. attendance (tri-state precedence rules, explicit no-show first)
4. expected / paid amounts
5. dosage value
6. dosage unit
7. treatment stage (only kept for categories that require one)

The classifier is pure: it never raises on malformed input and performs no
I/O. Persisting the result is the caller's job.
"""

from __future__ import annotations

from typing import Sequence

from app.classification.amounts import parse_decimal_input, resolve_amounts
from app.classification.normalize import sanitize_text
from app.classification.rules import (
    DEFAULT_ATTENDANCE_RULES,
    DEFAULT_CATEGORY_RULES,
    AttendanceRule,
    CategoryRuleTable,
    resolve_attendance,
)
from app.schemas.internal import EventSnapshot, FinalizedRecord, OverrideEntry


class Classifier:
    """Classifier bound to a category rule table and attendance rules."""

    def __init__(
        self,
        categories: CategoryRuleTable = DEFAULT_CATEGORY_RULES,
        attendance_rules: Sequence[AttendanceRule] = DEFAULT_ATTENDANCE_RULES,
    ):
        self.categories = categories
        self.attendance_rules = tuple(attendance_rules)

    def classify(self, override: OverrideEntry, event: EventSnapshot) -> FinalizedRecord:
        category = sanitize_text(override.category)
        if category is None:
            category = sanitize_text(event.category)
        category = self.categories.canonical_label(category) or category
        rule = self.categories.lookup(category)

        attended = resolve_attendance(self.attendance_rules, override, event, rule)

        amount_expected, amount_paid = resolve_amounts(
            override,
            event,
            default_amount=rule.default_amount if rule else None,
            attended=attended,
        )

        dosage_value = parse_decimal_input(override.dosage_value)
        if dosage_value is None:
            dosage_value = event.dosage_value

        dosage_unit = sanitize_text(override.dosage_unit)
        if dosage_unit is None:
            dosage_unit = event.dosage_unit

        treatment_stage = None
        if rule is not None and rule.requires_treatment_stage:
            treatment_stage = sanitize_text(override.treatment_stage)

        return FinalizedRecord(
            category=category,
            amount_expected=amount_expected,
            amount_paid=amount_paid,
            attended=attended,
            dosage_value=dosage_value,
            dosage_unit=dosage_unit,
            treatment_stage=treatment_stage,
        )


default_classifier = Classifier()


def classify(override: OverrideEntry, event: EventSnapshot) -> FinalizedRecord:
    """Classify with the default rule tables."""
    return default_classifier.classify(override, event)
