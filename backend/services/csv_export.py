"""
CSV export of visit reports.

Columns are fixed; every field is quoted so notes carrying commas, quotes
or line breaks come back intact through any CSV reader.
"""

import csv
import io
from datetime import datetime, timezone
from typing import List, Dict

from services.api_response import as_list

VISIT_CSV_COLUMNS = [
    "visit_date",
    "doctor_name",
    "doctor_specialization",
    "mr_name",
    "mr_employee_id",
    "products_discussed",
    "notes",
    "orders",
]


def _format_orders(visit: Dict) -> str:
    lines = []
    for order in as_list(visit.get("orders")):
        if not isinstance(order, dict):
            continue
        name = order.get("product_name") or order.get("product_id") or "Unknown"
        lines.append(f"{name}: {order.get('quantity', 0)}")
    return "; ".join(lines)


def visit_to_row(visit: Dict) -> Dict[str, str]:
    """visit: an enriched visit (see visit_reports.enrich_visits)."""
    return {
        "visit_date": (visit.get("visit_date") or "")[:10],
        "doctor_name": visit.get("doctor_name", ""),
        "doctor_specialization": visit.get("doctor_specialization", ""),
        "mr_name": visit.get("mr_name", ""),
        "mr_employee_id": visit.get("mr_employee_id", ""),
        "products_discussed": ", ".join(as_list(visit.get("products_discussed_names"))),
        "notes": visit.get("notes", ""),
        "orders": _format_orders(visit),
    }


def visits_to_csv(visits: List[Dict]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=VISIT_CSV_COLUMNS, quoting=csv.QUOTE_ALL)
    writer.writeheader()
    for visit in visits:
        writer.writerow(visit_to_row(visit))
    return output.getvalue()


def parse_csv(content: str) -> List[Dict[str, str]]:
    """Reads CSV text produced by visits_to_csv (or any headed CSV) back into rows."""
    return list(csv.DictReader(io.StringIO(content.lstrip("\ufeff"))))


def generate_csv_filename(prefix: str = "visit_reports") -> str:
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{prefix}_{date_str}.csv"
