"""
Normalization of stored simulation records.

Records saved by earlier versions of the application used several naming
conventions (English and Spanish keys). Everything read back from storage
passes through ``normalize_record`` before it re-enters the engine.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from loansim.calculations.amortization import GraceType
from loansim.calculations.engine import Currency, LoanParameters, TermUnit
from loansim.calculations.rates import DEFAULT_CAPITALIZATION, RateType

logger = logging.getLogger(__name__)

# Canonical field -> accepted keys, in lookup order
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("id",),
    "amount": ("amount", "monto"),
    "annual_rate": ("annual_rate", "tasa_anual"),
    "term_years": ("term_years", "años_plazo", "plazo_años"),
    "monthly_payment": ("monthly_payment", "pago_mensual"),
    "product_type": ("product_type", "tipo_de_producto"),
    "notes": ("notes", "notas"),
    "created_at": ("created_at", "creado_en"),
    "currency": ("currency", "moneda"),
    "rate_type": ("rate_type", "tipo_tasa"),
    "capitalization": ("capitalization", "capitalizacion"),
    "grace_type": ("grace_type", "tipo_gracia"),
    "grace_months": ("grace_months", "meses_gracia"),
    "bono_amount": ("bono_amount", "monto_bono"),
    "bank_name": ("bank_name", "entidad", "entity_name"),
    "npv": ("npv", "van"),
    "irr": ("irr", "tir"),
}

REQUIRED_NUMBERS = ("amount", "annual_rate", "term_years", "monthly_payment")
OPTIONAL_NUMBERS = ("capitalization", "grace_months", "bono_amount", "npv", "irr")
INTEGER_FIELDS = ("term_years", "capitalization", "grace_months")
TEXT_FIELDS = ("bank_name", "product_type", "notes", "created_at")

# Spanish labels stored by the original front end
RATE_TYPE_LABELS = {"efectiva": "effective", "tea": "effective", "nominal": "nominal", "tna": "nominal"}
GRACE_TYPE_LABELS = {"ninguno": "none", "sin gracia": "none", "total": "total", "parcial": "partial"}


def _lookup(raw: Dict[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _to_number(value: Any, field: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value for {field}: {value!r}") from exc
    if field in INTEGER_FIELDS:
        if not math.isfinite(number):
            raise ValueError(f"Invalid whole number for {field}: {value!r}")
        return int(round(number))
    return number


def _to_label(value: Any, labels: Dict[str, str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return labels.get(text, text) or None


def normalize_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a stored record onto the canonical field names.

    Required numbers default to 0 when absent; optional fields stay None.

    Raises:
        ValueError: If a present numeric field cannot be parsed
    """
    record = {field: _lookup(raw, field) for field in FIELD_ALIASES}

    for field in REQUIRED_NUMBERS:
        record[field] = _to_number(record[field], field) or 0
    for field in OPTIONAL_NUMBERS:
        record[field] = _to_number(record[field], field)

    record["rate_type"] = _to_label(record["rate_type"], RATE_TYPE_LABELS)
    record["grace_type"] = _to_label(record["grace_type"], GRACE_TYPE_LABELS)
    if record["currency"] is not None:
        record["currency"] = str(record["currency"]).upper()
    for field in TEXT_FIELDS:
        if record[field] is not None:
            record[field] = str(record[field])
    if record["created_at"] is None:
        record["created_at"] = ""

    return record


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    """
    Return the normalized records of a list response, whichever key it uses.

    Raises:
        ValueError: If the payload is not an object, the records are not a
            list, or a record is not an object
    """
    if not isinstance(payload, dict):
        raise ValueError("Expected an object holding a list of simulations")
    raw_list = payload.get("simulations") or payload.get("simulaciones") or []
    if not isinstance(raw_list, list):
        raise ValueError("Simulations must be a list of records")

    records = []
    for index, item in enumerate(raw_list):
        if not isinstance(item, dict):
            raise ValueError(f"Record {index} is not an object")
        records.append(normalize_record(item))
    logger.debug(f"Normalized {len(records)} stored simulation records")
    return records


def record_to_parameters(record: Dict[str, Any]) -> LoanParameters:
    """
    Rebuild engine inputs from a normalized record.

    Stored records only keep the term in whole years. Unknown labels fall
    back to the defaults; validation happens when the engine runs.
    """
    rate_type = record.get("rate_type") or RateType.effective.value
    grace_type = record.get("grace_type") or GraceType.none.value
    currency = record.get("currency") or Currency.PEN.value

    return LoanParameters(
        principal=record["amount"],
        annual_rate=record["annual_rate"],
        term_value=record["term_years"],
        term_unit=TermUnit.years,
        rate_type=RateType(rate_type) if rate_type in RateType.__members__ else RateType.effective,
        capitalization=record.get("capitalization") or DEFAULT_CAPITALIZATION,
        grace_type=GraceType(grace_type) if grace_type in GraceType.__members__ else GraceType.none,
        grace_months=record.get("grace_months") or 0,
        bono_amount=record.get("bono_amount") or 0.0,
        currency=Currency(currency) if currency in Currency.__members__ else Currency.PEN,
    )
