"""
Import simulations exported from the legacy PHP backend.

Usage:
    python scripts/import_legacy_simulations.py <user_id> <export.json>

The export is the JSON body returned by the old ``list_simulations``
endpoint (``{"simulations": [...]}`` or ``{"simulaciones": [...]}``).
"""
import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loansim.api.simulations import build_simulation
from loansim.calculations import LoanValidationError
from loansim.calculations.engine import run_simulation
from loansim.config import get_settings
from loansim.db.database import get_db_context, init_db
from loansim.services.records import extract_records, record_to_parameters


def main(user_id: str, export_path: str):
    settings = get_settings()
    init_db()

    with open(export_path, encoding="utf-8") as f:
        records = extract_records(json.load(f))

    print(f"Found {len(records)} records in {export_path}")

    imported = 0
    with get_db_context() as db:
        for index, record in enumerate(records):
            try:
                result = run_simulation(
                    record_to_parameters(record), settings.default_discount_rate
                )
            except LoanValidationError as e:
                print(f"  Skipping record {index} ({record.get('id')}): {e}")
                continue

            db.add(
                build_simulation(
                    user_id,
                    result,
                    bank_name=record["bank_name"],
                    product_type=record["product_type"],
                    notes=record["notes"],
                )
            )
            imported += 1

    print(f"\nImported {imported} simulations for user {user_id}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    main(sys.argv[1], sys.argv[2])
