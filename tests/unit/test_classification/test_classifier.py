"""Tests for the classifier's evaluation order and invariants."""

import pytest

from app.classification import classify
from app.classification.classifier import Classifier
from app.classification.rules import (
    DEFAULT_ATTENDANCE_RULES,
    CategoryRule,
    CategoryRuleTable,
    INDUCTION_STAGE,
    MAINTENANCE_STAGE,
    ROXAIR,
    ROXAIR_DEFAULT_AMOUNT,
    SUBCUTANEOUS_TREATMENT,
)
from app.schemas.internal import EventSnapshot, FinalizedRecord, OverrideEntry


def snapshot(**fields) -> EventSnapshot:
    fields.setdefault("calendar_id", "clinic")
    fields.setdefault("event_id", "evt-1")
    return EventSnapshot(**fields)


class TestScenarios:
    def test_roxair_default_amount_with_typed_payment(self):
        override = OverrideEntry(
            category="Roxair", amount_expected="", attended=True, amount_paid="50000"
        )
        event = snapshot(category=None, amount_expected=None, amount_paid=None)

        record = classify(override, event)

        assert record.category == ROXAIR
        assert record.amount_expected == ROXAIR_DEFAULT_AMOUNT == 150000
        assert record.amount_paid == 50000
        assert record.attended is True

    def test_explicit_no_show_overrides_attendance(self):
        override = OverrideEntry(attended=True, amount_paid="30000")
        event = snapshot(summary="Paciente no vino")

        record = classify(override, event)

        assert record.attended is False
        assert record.amount_paid == 0


class TestCategory:
    def test_override_category_wins(self):
        record = classify(OverrideEntry(category="Roxair"), snapshot(category="Consulta médica"))
        assert record.category == ROXAIR

    def test_blank_override_falls_back_to_baseline(self):
        record = classify(OverrideEntry(category="   "), snapshot(category="Consulta médica"))
        assert record.category == "Consulta médica"

    @pytest.mark.parametrize(
        "value", ["Subcutaneous treatment", "subcutaneous  TREATMENT", "tratamiento subcutaneo"]
    )
    def test_subcutaneous_is_rewritten_to_canonical_label(self, value):
        record = classify(OverrideEntry(category=value), snapshot())
        assert record.category == SUBCUTANEOUS_TREATMENT

    def test_unknown_category_is_kept_verbatim(self):
        record = classify(OverrideEntry(category="  Otro  "), snapshot())
        assert record.category == "Otro"

    def test_no_category_anywhere(self):
        assert classify(OverrideEntry(), snapshot()).category is None

    def test_roxair_matched_case_insensitively(self):
        record = classify(OverrideEntry(category="ROXAIR"), snapshot())
        assert record.category == ROXAIR
        assert record.amount_expected == ROXAIR_DEFAULT_AMOUNT

    def test_roxair_keeps_baseline_amount(self):
        record = classify(OverrideEntry(category="Roxair"), snapshot(amount_expected=120000))
        assert record.amount_expected == 120000


class TestAttendance:
    @pytest.mark.parametrize("override_attended", [True, False, None])
    def test_no_show_always_false(self, override_attended):
        event = snapshot(summary="Control", description="no se presentó", attended=True)
        record = classify(OverrideEntry(attended=override_attended), event)
        assert record.attended is False
        assert record.amount_paid == 0

    def test_override_wins_over_baseline(self):
        record = classify(OverrideEntry(attended=False), snapshot(attended=True, amount_paid=20000))
        assert record.attended is False
        assert record.amount_paid == 0

    def test_baseline_used_without_override(self):
        record = classify(OverrideEntry(), snapshot(attended=True, amount_paid=20000))
        assert record.attended is True
        assert record.amount_paid == 20000

    def test_unknown_attendance_stays_none(self):
        record = classify(OverrideEntry(), snapshot())
        assert record.attended is None
        assert record.amount_paid is None

    def test_category_lock(self):
        table = CategoryRuleTable(
            [CategoryRule("Licencia médica", locks_attendance=False), CategoryRule("Roxair")]
        )
        classifier = Classifier(categories=table, attendance_rules=DEFAULT_ATTENDANCE_RULES)

        record = classifier.classify(
            OverrideEntry(category="licencia medica", attended=True, amount_paid="10"),
            snapshot(),
        )

        assert record.category == "Licencia médica"
        assert record.attended is False
        assert record.amount_paid == 0


class TestDosageAndStage:
    def test_dosage_from_override(self):
        record = classify(
            OverrideEntry(dosage_value="0,5 ml", dosage_unit=" ml "),
            snapshot(dosage_value=0.3, dosage_unit="cc"),
        )
        assert record.dosage_value == 0.5
        assert record.dosage_unit == "ml"

    def test_unparseable_dosage_falls_back_to_baseline(self):
        record = classify(
            OverrideEntry(dosage_value="media", dosage_unit=""),
            snapshot(dosage_value=0.3, dosage_unit="cc"),
        )
        assert record.dosage_value == 0.3
        assert record.dosage_unit == "cc"

    def test_stage_kept_for_subcutaneous(self):
        record = classify(
            OverrideEntry(category="Tratamiento subcutáneo", treatment_stage=" Mantención "),
            snapshot(),
        )
        assert record.treatment_stage == MAINTENANCE_STAGE

    @pytest.mark.parametrize("category", ["Roxair", "Consulta médica", None, "Otro"])
    def test_stage_cleared_for_other_categories(self, category):
        record = classify(
            OverrideEntry(category=category, treatment_stage=INDUCTION_STAGE),
            snapshot(treatment_stage=INDUCTION_STAGE),
        )
        assert record.treatment_stage is None


class TestInvariants:
    EVENTS = [
        snapshot(),
        snapshot(summary="Paciente no vino", amount_paid=50000, attended=True),
        snapshot(category="Roxair", attended=False),
        snapshot(category="Tratamiento subcutáneo", dosage_value=0.5, treatment_stage="Mantención"),
    ]
    OVERRIDES = [
        OverrideEntry(),
        OverrideEntry(attended=False, amount_paid="abc"),
        OverrideEntry(category="Roxair", amount_expected="$99.999", attended=True),
        OverrideEntry(category="subcutaneous treatment", treatment_stage="Inducción"),
    ]

    @pytest.mark.parametrize("event", EVENTS)
    @pytest.mark.parametrize("override", OVERRIDES)
    def test_not_attended_means_zero_paid(self, override, event):
        record = classify(override, event)
        if record.attended is False:
            assert record.amount_paid == 0

    @pytest.mark.parametrize("event", EVENTS)
    @pytest.mark.parametrize("override", OVERRIDES)
    def test_reclassifying_a_result_changes_nothing(self, override, event):
        first = classify(override, event)
        stored = event.model_copy(update=first.model_dump())

        second = classify(OverrideEntry.from_record(first), stored)

        assert second == first
        assert second.changed_fields(first) == []

    def test_result_is_finalized_record(self):
        assert isinstance(classify(OverrideEntry(), snapshot()), FinalizedRecord)
