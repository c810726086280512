"""
Cost record normalization: standardize dates, amounts, cost types and ids.

Converts raw exported rows (which may use camelCase or snake_case columns,
German decimal commas, or empty strings for missing values) into canonical
CostRecord objects.

Design:
- Dates normalized to calendar dates
- Amounts normalized to floats ("1.234,56" and "1234.56" both accepted)
- Cost types normalized to the CostType enum
- Rows that fail are reported, never silently repaired
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from costwatch.core.exceptions import DataValidationError
from costwatch.data.schema import CostRecord, CostType

logger = logging.getLogger(__name__)


class NormalizationError(DataValidationError):
    """Raised when cost record normalization fails."""
    pass


# Column name in the canonical schema -> accepted camelCase alias
_FIELD_ALIASES = {
    "id": "id",
    "location_id": "locationId",
    "supplier_id": "supplierId",
    "cost_type": "costType",
    "amount": "amount",
    "quantity": "quantity",
    "unit": "unit",
    "price_per_unit": "pricePerUnit",
    "period_start": "periodStart",
    "period_end": "periodEnd",
    "invoice_number": "invoiceNumber",
}

_COST_TYPE_ALIASES = {
    "gas": CostType.NATURAL_GAS,
    "power": CostType.ELECTRICITY,
    "diesel": CostType.FUEL_DIESEL,
    "petrol": CostType.FUEL_PETROL,
    "internet": CostType.TELECOM_INTERNET,
}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_date(value: Any) -> date:
    """
    Normalize a date value.

    Supports:
    - date / datetime objects
    - ISO 8601: 2024-01-31, 2024-01-31T00:00:00Z
    - German format: 31.01.2024

    Raises:
        NormalizationError: If the format is not recognized
    """
    if _blank(value):
        raise NormalizationError("Empty date")

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    try:
        return datetime.strptime(text, "%d.%m.%Y").date()
    except ValueError:
        pass

    raise NormalizationError(f"Could not parse date: {text}")


def normalize_amount(value: Any) -> Optional[float]:
    """
    Normalize a monetary or quantity value.

    Handles currency symbols, thousands separators and decimal commas.
    A single separator is always read as the decimal separator, so "1.234"
    and "1,234" both give 1.234; exports that group thousands without
    decimals must repeat the separator ("1.234.567") or add decimals
    ("1.234,00"). Returns None for missing values.

    Raises:
        NormalizationError: If the value is not numeric
    """
    if _blank(value):
        return None

    if isinstance(value, bool):
        raise NormalizationError(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().replace("€", "").replace(" ", "")

    if "," in text and "." in text:
        # the later separator is the decimal separator
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")

    try:
        return float(text)
    except ValueError as e:
        raise NormalizationError(f"Not a number: {value!r}") from e


def normalize_cost_type(value: Any) -> CostType:
    """
    Normalize a cost type to the CostType enum.

    Case-insensitive; dashes and spaces are treated as underscores.

    Raises:
        NormalizationError: If the cost type is not recognized
    """
    if _blank(value):
        raise NormalizationError("Empty cost type")

    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")

    if key in _COST_TYPE_ALIASES:
        return _COST_TYPE_ALIASES[key]

    try:
        return CostType(key)
    except ValueError as e:
        raise NormalizationError(f"Unknown cost type: {value}") from e


def _get(raw: Dict[str, Any], field: str) -> Any:
    value = raw.get(field)
    if _blank(value):
        value = raw.get(_FIELD_ALIASES[field])
    return None if _blank(value) else value


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value).strip()


def normalize_cost_record(raw: Dict[str, Any]) -> CostRecord:
    """
    Convert a raw row to a canonical CostRecord.

    Args:
        raw: Row from ingestion (dict with snake_case or camelCase keys)

    Returns:
        CostRecord object (fully validated)

    Raises:
        NormalizationError: If required fields are missing or invalid
    """
    if not isinstance(raw, dict):
        raise NormalizationError(f"Expected dict, got {type(raw)}")

    amount = normalize_amount(_get(raw, "amount"))
    if amount is None:
        raise NormalizationError("Missing amount")

    try:
        return CostRecord(
            id=_optional_text(_get(raw, "id")),
            location_id=_optional_text(_get(raw, "location_id")),
            supplier_id=_optional_text(_get(raw, "supplier_id")),
            cost_type=normalize_cost_type(_get(raw, "cost_type")),
            amount=amount,
            quantity=normalize_amount(_get(raw, "quantity")),
            unit=_optional_text(_get(raw, "unit")),
            price_per_unit=normalize_amount(_get(raw, "price_per_unit")),
            period_start=normalize_date(_get(raw, "period_start")),
            period_end=normalize_date(_get(raw, "period_end")),
            invoice_number=_optional_text(_get(raw, "invoice_number")),
        )
    except ValidationError as e:
        raise NormalizationError(f"Invalid cost record: {e}") from e


def normalize_cost_records(
    raw_records: List[Dict[str, Any]]
) -> Tuple[List[CostRecord], int]:
    """
    Normalize multiple raw rows.

    Returns:
        Tuple of (records, skipped_count)

    Notes:
        - Rows that fail normalization are skipped and logged as warnings
    """
    normalized = []
    skipped = 0

    for idx, raw in enumerate(raw_records):
        try:
            normalized.append(normalize_cost_record(raw))
        except NormalizationError as e:
            logger.warning(f"Skipped cost record at row {idx}: {e}")
            skipped += 1

    return normalized, skipped
