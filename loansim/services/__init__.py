"""
Services around the calculation engine.
"""

from loansim.services.records import (
    normalize_record,
    extract_records,
    record_to_parameters,
)

__all__ = ["normalize_record", "extract_records", "record_to_parameters"]
