"""Override validation performed before classification."""

from __future__ import annotations

from app.classification.normalize import normalize_category, sanitize_text
from app.classification.rules import (
    DEFAULT_CATEGORY_RULES,
    TREATMENT_STAGE_CHOICES,
    CategoryRuleTable,
)
from app.core.exceptions import OverrideValidationError
from app.schemas.internal import OverrideEntry


def canonical_treatment_stage(stage: str | None) -> str | None:
    """Canonical stage label for a known stage, None otherwise."""
    key = normalize_category(stage)
    for choice in TREATMENT_STAGE_CHOICES:
        if key and key == normalize_category(choice):
            return choice
    return None


def validate_override(
    override: OverrideEntry, categories: CategoryRuleTable = DEFAULT_CATEGORY_RULES
) -> OverrideEntry:
    """Check an override against the category and stage vocabularies.

    Returns a copy with category and treatment stage rewritten to their
    canonical labels.

    Raises:
        OverrideValidationError: CLS_002 for an unknown category, CLS_003 for
            an unknown treatment stage.
    """
    updates: dict[str, str] = {}

    category = sanitize_text(override.category)
    if category is not None:
        label = categories.canonical_label(category)
        if label is None:
            raise OverrideValidationError("CLS_002", details={"category": category})
        updates["category"] = label

    stage = sanitize_text(override.treatment_stage)
    if stage is not None:
        label = canonical_treatment_stage(stage)
        if label is None:
            raise OverrideValidationError("CLS_003", details={"treatment_stage": stage})
        updates["treatment_stage"] = label

    return override.model_copy(update=updates) if updates else override
