"""
Pharma Field Sales - Visit CSV export.
Run: cd backend && pytest tests/test_csv_export.py -v
"""

from services.csv_export import visits_to_csv, parse_csv, visit_to_row, VISIT_CSV_COLUMNS
from services.visit_reports import submit_visit, list_visits
from tests.conftest import insert_product, insert_doctor


def sample_visit(**overrides):
    visit = {
        "visit_date": "2026-03-14T10:30:00+00:00",
        "doctor_name": "Dr. Kulkarni",
        "doctor_specialization": "Pediatrics",
        "mr_name": "Rahul Patil",
        "mr_employee_id": "MR001",
        "products_discussed_names": ["Coldex Syrup", "Paracip 500"],
        "notes": "Asked for samples",
        "orders": [{"product_name": "Coldex Syrup", "quantity": 3}],
    }
    visit.update(overrides)
    return visit


class TestVisitCsv:

    def test_header_and_every_field_quoted(self):
        content = visits_to_csv([sample_visit()])
        lines = content.splitlines()
        assert lines[0] == ",".join(f'"{c}"' for c in VISIT_CSV_COLUMNS)
        assert lines[1].startswith('"2026-03-14","Dr. Kulkarni"')

    def test_row_shape(self):
        row = visit_to_row(sample_visit())
        assert row["products_discussed"] == "Coldex Syrup, Paracip 500"
        assert row["orders"] == "Coldex Syrup: 3"

    def test_tricky_notes_survive_round_trip(self):
        notes = 'Said "maybe", wants 10,000 strips\nfollow up next week'
        rows = parse_csv(visits_to_csv([sample_visit(notes=notes), sample_visit(notes="plain")]))
        assert len(rows) == 2
        assert rows[0]["notes"] == notes
        assert rows[1]["notes"] == "plain"

    def test_malformed_orders_export_empty(self):
        row = visit_to_row(sample_visit(orders=None, products_discussed_names=None))
        assert row["orders"] == ""
        assert row["products_discussed"] == ""

    def test_no_visits_header_only(self):
        assert parse_csv(visits_to_csv([])) == []

    async def test_filtered_export_matches_filtered_list(self, mock_db, mr, admin):
        product = await insert_product(mock_db, "Coldex Syrup", 100.0)
        doctor = await insert_doctor(mock_db)
        for day in ("2026-03-01", "2026-03-02", "2026-04-01"):
            await submit_visit(mr["id"], doctor["id"], [product["id"]], f"Visit, {day}", visit_date=day)

        visits = await list_visits(admin, start_date="2026-03-01", end_date="2026-03-31")
        rows = parse_csv(visits_to_csv(visits))

        assert len(rows) == len(visits) == 2
        assert {r["notes"] for r in rows} == {"Visit, 2026-03-01", "Visit, 2026-03-02"}
