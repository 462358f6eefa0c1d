"""Suggest classification metadata from an event's free text.

Clinic staff type appointments into the shared calendar with a loose
vocabulary ("2da dosis clustoid (25/50)", "RETIRA ROXAIR (pagado)",
"control s/c"). This module recovers category, amounts, attendance, dosage
and treatment stage from that text. It is used by the bulk reclassification
job to fill fields nobody has classified yet; user overrides always take
precedence over what is inferred here.

Amounts are written in thousands of CLP (50 -> 50000).
"""

from __future__ import annotations

import re
import unicodedata

from app.classification.amounts import MAX_REASONABLE_AMOUNT
from app.classification.no_show import is_explicit_no_show
from app.classification.rules import (
    INDUCTION_STAGE,
    INJECTION_SERVICE,
    MAINTENANCE_STAGE,
    MEDICAL_CONSULTATION,
    MEDICAL_CONTROL,
    MEDICAL_LEAVE,
    ROXAIR,
    SUBCUTANEOUS_TREATMENT,
    TESTS_AND_EXAMS,
)
from app.schemas.internal import EventSnapshot, ParsedCalendarMetadata

_I = re.IGNORECASE


def _compile(*patterns: str) -> list[re.Pattern[str]]:
    return [re.compile(p, _I) for p in patterns]


SUBCUT_PATTERNS = _compile(
    r"cl[au]s[i]?t[oau]?id[eo]?",  # clustoid, clastoid, clusitoid
    r"clutoid",
    r"\bclust",
    r"\bdosis\s+clust",
    r"alxoid",
    r"cluxin",
    r"oral[\s-]?tec",
    r"\bvacc?\b",
    r"\bvac\.?\s*[aá]caros?\b",
    r"vacuna",
    r"\bsubcut[áa]ne[oa]",
    r"inmuno",
    r"\d+[ªº]?\s*(era|ta|da|ra|va)?\s*dosis",  # 2era dosis, 4ta dosis
    r"\bdosis\s+mensual",
    r"v[ie]+n?[ie]?[eo]?r?o?n?\s+a\s+buscar",  # vinieron a buscar
    r"\bmantenci[oó]n\b",
    r"\bse\s+envio\s+dosis\b",
    r"\benviado\b.*\bpagado\b",
    r"\d+([.,]\d+)?\s*(ml|cc|mg)\b",
)

DECIMAL_DOSAGE_PATTERN = re.compile(r"\b(\d+[.,]\d{1,2})\b")

TEST_PATTERNS = _compile(
    r"\bexam[eé]n(es)?\b",
    r"test\s*(de\s*)?parche",
    r"lectura\s*(de\s*)?parche",
    r"\d+(era|da|ra)?\s*test",
    r"lleg[oó]\s*test",
    r"\d+(era|da|ra)?\s*lectura",
    r"\btest\b",
    r"cut[áa]neo",
    r"ambiental",
    r"panel",
    r"multi\s*tes?t?",
    r"prick",
    r"aeroal[eé]rgenos?",
)

LICENCIA_PATTERNS = _compile(r"\blic\b", r"\blicencia\b")

CONTROL_PATTERNS = _compile(
    r"\bcontrol\b",
    r"\d+-\d+control",  # 03-10control
    r"\d{3,4}control",  # 1632control
    r"\d{1,2}:\d{2}control",  # 14:56control
    r"confirma\s*control",
    r"\bontrol\b",
)

CONSULTA_PATTERNS = _compile(
    r"\bconsulta\b",
    r"\bconsuta\b",
    r"\bconsult\b",
    r"\bconsulto\b",
    r"\d+(era|da|ra)?\s*consulta",
    r"\d+(era|da|ra)?\s*consuta",
    r"\d+(era|da|ra)?\s*consult\b",
    r"\d+(era|da|ra)?\s*consulto",
    r"^\d{1,2}:\d{2}\s+[a-záéíóúñ]+\s+[a-záéíóúñ]+",
    r"\btelemedicina\b",
    r"\bdoctoralia\b",
    r"\d+(era|da|ra)?\s*confirma\b",
    r"^\d{1,2}:\d{2}\s*\d+(era|da|ra)?\b",
    r"\breserva\s+[a-záéíóúñ]+",
    r"\breservado\s+\+?56",
    r"\breservado\s+9\d{8}",
    r"\bno\s+contesta\s+reserva\b",
    r"\bretirar\s+documentos\b",
    r"^[a-záéíóúñ]+\s+[a-záéíóúñ]+\s+9\d{8}$",  # name + mobile number
    r"^[a-záéíóúñ]+\s+[a-záéíóúñ]+\s+[a-záéíóúñ]+\s+9\d{8}$",
)

ROXAIR_PATTERNS = _compile(r"\broxair\b", r"\bretira\s+roxair\b", r"\benviar\s+roxair\b")

INJECTION_PATTERNS = _compile(
    r"\bdacam\b",
    r"\bcidoten\b",
    r"\bbetametasona\b",
    r"\bneurobionta\b",
    r"\blo\s+trae\b",
    r"\btrae\s+(?:su|el)\s+medicamento\b",
    r"\btrae\s+medicamento\b",
    r"\bpaciente\s+trae\b",
    r"\binyecci[oó]n\b",
    r"\badministraci[oó]n\b",
    r"\bim\b",  # intramuscular
)

# Administrative entries that are not appointments.
IGNORE_PATTERNS = _compile(
    r"^recordar\b",
    r"^semana\s+de\s+vacaciones$",
    r"\brecordar\b.*\bdoctor\b",
    r"\bferiado\b",
    r"^vacaciones$",
    r"^elecciones$",
    r"^doctor\s+ocupado$",
    r"\bpublicidad\b",
    r"\bgrabaci[oó]n\s+de\s+videos?\b",
    r"^reuni[oó]n\b",
    r"^jornada\s+de\s+invierno\b",
    r"^reservado$",
    r"\band\b.*\b[a-záéíóúñ]+$",  # "name and name"
)

ATTENDED_PATTERNS = _compile(r"(?<!no )\blleg[oó]\b", r"(?<!no )\basist[ií]o\b")

INDUCTION_PATTERNS = _compile(
    r"\b1[º°]?(?:era|ra|er)?\s*dosis\b",
    r"\bprim(?:er)?a?\s*dosis\b",
    r"\bpr[im]+[er]*a\s*dosis\b",  # primer, primra, prmera
    r"\b[2-5][º°]?(?:era|da|ra|ta|va|a)?\s*dosis\b",
    r"(?:segunda|tercera|cuarta|quinta)\s*dosis\b",
)

MAINTENANCE_PATTERNS = _compile(
    r"\bmantenci[oó]n\b",
    r"\bmantencio\b",
    r"\bmant\b",
    r"\bmensual\b",
    r"\bdosis\s+clust(?:oid)?\b",
)

DOSAGE_PATTERNS = _compile(
    r"(\d+(?:[.,]\d+)?)\s*(ml)\b",
    r"(\d+(?:[.,]\d+)?)\s*(cc)\b",
    r"(\d+(?:[.,]\d+)?)\s*(mg)\b",
)

SIN_COSTO_PATTERN = re.compile(r"\bs/?c\b|sincosto|sin\s*costo", _I)

MONEY_CONFIRMED_PATTERNS = _compile(
    r"\blleg[oó]\b", r"\benv[ií][oó]\b", r"\btransferencia\b", r"\bpagado\b"
)

# The patient confirmed a future visit; nothing has been paid yet.
PENDING_CONFIRMATION_PATTERNS = _compile(r"\bconfirma\b", r"\bconfirmad[oa]\b")

# Home visits are charged on delivery.
DOMICILIO_PATTERNS = _compile(r"\bdomicilio\b", r"\bse\s+l[ao]\s+llev[oó]\b")

PHONE_PATTERNS = [
    re.compile(r"^9\d{8}$"),  # Chilean mobile
    re.compile(r"^569\d{8}$"),
    re.compile(r"^56\d{9}$"),
]

_SLASH_AMOUNTS = re.compile(r"\((\d+)\s*/\s*(\d+)\)")
_PAREN_CONTENT = re.compile(r"\(([^)]+)\)")
_SLASH_ONLY = re.compile(r"^\d+\s*/\s*\d+$")
_DAY_MONTH = re.compile(r"\b\d{1,2}-\d{1,2}\b")
_MISSING_PAREN = re.compile(r"[a-z](\d+)\)", _I)
_KEYWORD_AMOUNT = re.compile(
    r"(?:cl[au]s[i]?t[oau]?id[eo]?|cluxin|alxoid|oral[-\s]?tec|vacuna)\s+(\d{2,3})\b", _I
)
_TRAILING_AMOUNT = re.compile(r"\s(\d{2,3})\s*$")
_PAID_AMOUNT = re.compile(r"pagado\s*(\d+)", _I)
_PAID_WORD = re.compile(r"pagado", _I)
_HALF_ML = re.compile(r"0[.,]5(\s*ml)?\b", _I)
_BARE_DECIMAL = re.compile(r"\b(0[.,]\d+)\b")

MAX_AMOUNT_DIGITS = 8


def _matches_any(text: str, patterns: list[re.Pattern[str]]) -> bool:
    return any(p.search(text) for p in patterns)


def _clean(value: str | None) -> str:
    return unicodedata.normalize("NFC", value or "")


def is_ignored_event(summary: str | None) -> bool:
    """True for administrative calendar entries (holidays, reminders, meetings)."""
    text = _clean(summary).lower()
    return _matches_any(text, IGNORE_PATTERNS)


def normalize_amount_raw(raw: str) -> int | None:
    """Turn an amount fragment into CLP, rejecting phone numbers and IDs."""
    digits = re.sub(r"[^0-9]", "", raw)
    if not digits:
        return None
    if any(p.match(digits) for p in PHONE_PATTERNS):
        return None
    # Longer runs are RUTs, IDs or several numbers merged together.
    if len(digits) > MAX_AMOUNT_DIGITS:
        return None

    value = int(digits)
    if value <= 0:
        return None
    normalized = value if value >= 1000 else value * 1000
    if normalized > MAX_REASONABLE_AMOUNT:
        return None
    return normalized


def extract_amounts(text: str) -> tuple[int | None, int | None]:
    """Extract (amount_expected, amount_paid) from event text."""
    expected: int | None = None
    paid: int | None = None

    # (paid/expected), e.g. "(25/50)"
    for match in _SLASH_AMOUNTS.finditer(text):
        paid_value = normalize_amount_raw(match.group(1))
        expected_value = normalize_amount_raw(match.group(2))
        if paid_value is not None and paid is None:
            paid = paid_value
        if expected_value is not None and expected is None:
            expected = expected_value

    # (amount) or (pagado amount)
    for match in _PAREN_CONTENT.finditer(text):
        content = match.group(1)
        if _SLASH_ONLY.match(content):
            continue
        # "pagado el 21-11/ 30" must not merge the date into the amount.
        content = _DAY_MONTH.sub("", content)
        amount = normalize_amount_raw(content)
        if amount is None:
            continue
        if _PAID_WORD.search(content):
            paid = amount
            if expected is None:
                expected = amount
        elif expected is None:
            expected = amount

    # Missing opening paren: "acaros20)" or "acaros820)" keeps the last two digits.
    if expected is None:
        for match in _MISSING_PAREN.finditer(text):
            digits = match.group(1)
            amount = normalize_amount_raw(digits[-2:] if len(digits) >= 2 else digits)
            if amount is not None:
                expected = amount
                break

    # "clustoid 50"
    if expected is None:
        for match in _KEYWORD_AMOUNT.finditer(text):
            amount = normalize_amount_raw(match.group(1))
            if amount is not None:
                expected = amount
                break

    # Trailing amount without parens
    if expected is None:
        match = _TRAILING_AMOUNT.search(text)
        if match:
            expected = normalize_amount_raw(match.group(1))

    for match in _PAID_AMOUNT.finditer(text):
        amount = normalize_amount_raw(match.group(1))
        if amount is not None:
            paid = amount
            if expected is None:
                expected = amount

    if SIN_COSTO_PATTERN.search(text):
        expected = 0
        paid = 0

    return refine_paid_amount(text, expected, paid)


def refine_paid_amount(
    text: str, expected: int | None, paid: int | None
) -> tuple[int | None, int | None]:
    """Adjust the paid amount from payment wording; first applicable rule wins."""
    if _matches_any(text, PENDING_CONFIRMATION_PATTERNS):
        return expected, None

    # A confirmed payment ("llegó", "transferencia", ...) without an explicit
    # paid amount means the expected amount was paid.
    if expected is not None and paid is None and _matches_any(text, MONEY_CONFIRMED_PATTERNS):
        return expected, expected

    if expected is not None and not paid and _matches_any(text, DOMICILIO_PATTERNS):
        return expected, expected

    return expected, paid


def classify_category(summary: str, description: str) -> str | None:
    """Infer a category label from event text, or None when unsure."""
    text = f"{summary} {description}".lower()
    summary_only = summary.lower()

    if _matches_any(summary_only, IGNORE_PATTERNS) or _matches_any(text, IGNORE_PATTERNS):
        return None

    # Ordering matters: earlier matches win.
    if _matches_any(text, TEST_PATTERNS):
        return TESTS_AND_EXAMS
    if _matches_any(text, SUBCUT_PATTERNS):
        return SUBCUTANEOUS_TREATMENT
    if _matches_any(text, ROXAIR_PATTERNS):
        return ROXAIR
    if _matches_any(text, INJECTION_PATTERNS):
        return INJECTION_SERVICE
    if _matches_any(text, LICENCIA_PATTERNS):
        return MEDICAL_LEAVE
    if _matches_any(text, CONTROL_PATTERNS):
        return MEDICAL_CONTROL
    if _matches_any(text, CONSULTA_PATTERNS):
        return MEDICAL_CONSULTATION

    # A standalone decimal ("0,5") nothing else claimed is a dosage.
    if DECIMAL_DOSAGE_PATTERN.search(text):
        return SUBCUTANEOUS_TREATMENT

    return None


def detect_attendance(event: EventSnapshot) -> bool | None:
    if is_explicit_no_show(event):
        return False
    return True if _matches_any(event.text, ATTENDED_PATTERNS) else None


def extract_dosage(text: str) -> tuple[float | None, str | None]:
    """Extract (dosage_value, dosage_unit), e.g. "0,5 ml" -> (0.5, "ml")."""
    for pattern in DOSAGE_PATTERNS:
        match = pattern.search(text)
        if match:
            return float(match.group(1).replace(",", ".")), match.group(2).lower()

    # A bare "0,5" in this context is millilitres.
    match = _BARE_DECIMAL.search(text)
    if match:
        return float(match.group(1).replace(",", ".")), "ml"

    if _matches_any(text, MAINTENANCE_PATTERNS):
        return 0.5, "ml"

    return None, None


def detect_treatment_stage(text: str) -> str | None:
    # "2da dosis clustoid" is induction even though "dosis clustoid" reads as maintenance.
    if _matches_any(text, INDUCTION_PATTERNS):
        return INDUCTION_STAGE
    if _matches_any(text, MAINTENANCE_PATTERNS) or _HALF_ML.search(text):
        return MAINTENANCE_STAGE
    return None


def parse_calendar_metadata(
    summary: str | None, description: str | None = None
) -> ParsedCalendarMetadata:
    """Parse category, amounts, attendance, dosage and stage from event text.

    Dosage and treatment stage only apply to subcutaneous treatment. The
    stage comes from the text ("3era dosis", "mantención") when it says so;
    otherwise a known dosage decides it: below 0.5 ml is induction, 0.5 ml
    and above is maintenance.
    """
    summary_text = _clean(summary)
    description_text = _clean(description)
    snapshot = EventSnapshot(summary=summary_text, description=description_text)
    text = snapshot.text

    amount_expected, amount_paid = extract_amounts(text)
    category = classify_category(summary_text, description_text)
    attended = detect_attendance(snapshot)

    is_subcut = category == SUBCUTANEOUS_TREATMENT
    dosage_value, dosage_unit = extract_dosage(text) if is_subcut else (None, None)

    treatment_stage = detect_treatment_stage(text) if is_subcut else None
    if is_subcut and treatment_stage is None and dosage_value is not None:
        treatment_stage = INDUCTION_STAGE if dosage_value < 0.5 else MAINTENANCE_STAGE

    return ParsedCalendarMetadata(
        category=category,
        amount_expected=amount_expected,
        amount_paid=amount_paid,
        attended=attended,
        dosage_value=dosage_value,
        dosage_unit=dosage_unit,
        treatment_stage=treatment_stage,
    )
