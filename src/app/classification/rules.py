"""Category vocabulary and attendance precedence rules.

The classifier never names a category itself. Everything category-specific
(default amounts, whether a treatment stage applies, attendance locks) is
declared here in a lookup table keyed by the normalized label, so new rules
are added without touching ``Classifier.classify``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from app.classification.no_show import is_explicit_no_show
from app.classification.normalize import normalize_category
from app.schemas.internal import EventSnapshot, OverrideEntry

SUBCUTANEOUS_TREATMENT = "Tratamiento subcutáneo"
TESTS_AND_EXAMS = "Test y exámenes"
MEDICAL_CONSULTATION = "Consulta médica"
MEDICAL_CONTROL = "Control médico"
MEDICAL_LEAVE = "Licencia médica"
ROXAIR = "Roxair"
INJECTION_SERVICE = "Servicio de inyección"

ROXAIR_DEFAULT_AMOUNT = 150000

MAINTENANCE_STAGE = "Mantención"
INDUCTION_STAGE = "Inducción"
TREATMENT_STAGE_CHOICES: tuple[str, ...] = (MAINTENANCE_STAGE, INDUCTION_STAGE)


@dataclass(frozen=True)
class CategoryRule:
    """Billing rules attached to one category label."""

    label: str
    default_amount: int | None = None
    requires_treatment_stage: bool = False
    locks_attendance: bool | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)


class CategoryRuleTable:
    """Lookup of category rules by normalized label (and aliases)."""

    def __init__(self, rules: Iterable[CategoryRule]):
        self._rules: list[CategoryRule] = list(rules)
        self._by_key: dict[str, CategoryRule] = {}
        for rule in self._rules:
            for name in (rule.label, *rule.aliases):
                self._by_key[normalize_category(name)] = rule

    def lookup(self, category: str | None) -> CategoryRule | None:
        key = normalize_category(category)
        if not key:
            return None
        return self._by_key.get(key)

    def canonical_label(self, category: str | None) -> str | None:
        """Canonical label for a known category, None for unknown ones."""
        rule = self.lookup(category)
        return rule.label if rule else None

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(rule.label for rule in self._rules)

    def __contains__(self, category: object) -> bool:
        return isinstance(category, str) and self.lookup(category) is not None

    def __len__(self) -> int:
        return len(self._rules)


DEFAULT_CATEGORY_RULES = CategoryRuleTable(
    [
        CategoryRule(
            SUBCUTANEOUS_TREATMENT,
            requires_treatment_stage=True,
            aliases=("Subcutaneous treatment",),
        ),
        CategoryRule(TESTS_AND_EXAMS),
        CategoryRule(MEDICAL_CONSULTATION),
        CategoryRule(MEDICAL_CONTROL),
        CategoryRule(MEDICAL_LEAVE),
        CategoryRule(ROXAIR, default_amount=ROXAIR_DEFAULT_AMOUNT),
        CategoryRule(INJECTION_SERVICE),
    ]
)

CATEGORY_CHOICES: tuple[str, ...] = DEFAULT_CATEGORY_RULES.labels


# Attendance precedence: each rule answers True, False or None (no opinion).
AttendanceRule = Callable[[OverrideEntry, EventSnapshot, CategoryRule | None], bool | None]


def explicit_no_show_rule(
    override: OverrideEntry, event: EventSnapshot, rule: CategoryRule | None
) -> bool | None:
    return False if is_explicit_no_show(event) else None


def category_lock_rule(
    override: OverrideEntry, event: EventSnapshot, rule: CategoryRule | None
) -> bool | None:
    return rule.locks_attendance if rule else None


def override_rule(
    override: OverrideEntry, event: EventSnapshot, rule: CategoryRule | None
) -> bool | None:
    return override.attended


def baseline_rule(
    override: OverrideEntry, event: EventSnapshot, rule: CategoryRule | None
) -> bool | None:
    return event.attended


DEFAULT_ATTENDANCE_RULES: tuple[AttendanceRule, ...] = (
    explicit_no_show_rule,
    category_lock_rule,
    override_rule,
    baseline_rule,
)


def resolve_attendance(
    rules: Sequence[AttendanceRule],
    override: OverrideEntry,
    event: EventSnapshot,
    rule: CategoryRule | None,
) -> bool | None:
    """First rule with an opinion wins; None when no rule has one.

    With the default rules an override without attendance keeps the stored
    value (``baseline_rule``) instead of clearing it.
    """
    for attendance_rule in rules:
        verdict = attendance_rule(override, event, rule)
        if verdict is not None:
            return verdict
    return None
