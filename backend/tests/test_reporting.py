"""
Pharma Field Sales - Dashboard aggregation tests.
Run: cd backend && pytest tests/test_reporting.py -v
"""

import pytest
from datetime import datetime, timezone

from services import reporting
from services.visit_reports import submit_visit
from tests.conftest import insert_user, insert_product, insert_doctor


class TestPerformanceScore:

    def test_half_orders_per_visit(self):
        assert reporting.performance_score(4, 2) == 75

    def test_no_visits(self):
        assert reporting.performance_score(0, 5) == 0

    def test_capped_at_100(self):
        assert reporting.performance_score(2, 10) == 100

    def test_rounds_half_up(self):
        # 1/4 * 50 + 50 = 62.5
        assert reporting.performance_score(4, 1) == 63

    def test_no_orders(self):
        assert reporting.performance_score(3, 0) == 50


class TestPureAggregates:

    def test_top_discussed_groups_by_name(self):
        names = {"p1": "Coldex Syrup", "p2": "Paracip 500"}
        visits = [
            {"products_discussed": ["p1", "p2"]},
            {"products_discussed": ["p1"]},
            {"products_discussed": ["ghost"]},
        ]
        top = reporting.top_discussed_products(visits, names)
        assert top[0] == {"name": "Coldex Syrup", "count": 2}
        assert {"name": "Unknown", "count": 1} in top

    def test_top_discussed_keeps_ten(self):
        names = {f"p{i}": f"Product {i}" for i in range(15)}
        visits = [{"products_discussed": list(names)}]
        assert len(reporting.top_discussed_products(visits, names)) == 10

    @pytest.mark.parametrize("bad", [None, {"p1": 1}, "p1", 42])
    def test_malformed_arrays_read_as_empty(self, bad):
        visits = [{"products_discussed": bad, "orders": bad}]
        assert reporting.top_discussed_products(visits, {"p1": "X"}) == []
        assert reporting.top_ordered_products(visits) == []
        assert sum(reporting.orders_by_status(visits).values()) == 0

    def test_visits_list_itself_malformed(self):
        assert reporting.orders_by_status(None) == {
            "Pending": 0, "Confirmed": 0, "Shipped": 0, "Delivered": 0, "Cancelled": 0
        }

    def test_top_ordered_skips_cancelled(self):
        visits = [{"orders": [
            {"product_name": "A", "quantity": 5, "total_amount": 50, "status": "Pending"},
            {"product_name": "B", "quantity": 9, "total_amount": 90, "status": "Cancelled"},
            {"product_name": "A", "quantity": 1, "total_amount": 10, "status": "Delivered"},
        ]}]
        assert reporting.top_ordered_products(visits) == [{"name": "A", "quantity": 6, "value": 60}]

    def test_visits_trend_zero_filled(self):
        today = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        visits = [
            {"visit_date": "2026-03-10T09:00:00+00:00"},
            {"visit_date": "2026-03-10T15:00:00+00:00"},
            {"visit_date": "2026-03-04T09:00:00+00:00"},
            {"visit_date": "2026-03-01T09:00:00+00:00"},
        ]
        trend = reporting.visits_trend(visits, today=today)
        assert len(trend) == 7
        assert trend[0] == {"date": "2026-03-04", "visits": 1}
        assert trend[-1] == {"date": "2026-03-10", "visits": 2}
        assert sum(d["visits"] for d in trend) == 3

    def test_mr_performance_sorted(self):
        mrs = [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}, {"id": "c", "name": "C"}]
        visits = [
            {"mr_id": "a", "doctor_id": "d1", "orders": []},
            {"mr_id": "b", "doctor_id": "d1", "orders": [{"total_amount": 10}]},
            {"mr_id": "b", "doctor_id": "d2", "orders": [{"total_amount": 5}]},
        ]
        rows = reporting.mr_performance(mrs, visits)
        assert [r["mr_id"] for r in rows] == ["b", "a", "c"]
        assert rows[0]["performance_score"] == 100
        assert rows[0]["unique_doctors"] == 2
        assert rows[0]["order_value"] == 15
        assert rows[2]["performance_score"] == 0


class TestDashboards:

    async def test_admin_stats(self, mock_db, mr):
        product = await insert_product(mock_db, "Coldex Syrup", 100.0)
        doctor = await insert_doctor(mock_db)
        await insert_user(mock_db, role="Admin")
        await mock_db.mr_requests.insert_one({"id": "r1", "status": "pending"})

        for _ in range(4):
            await submit_visit(mr["id"], doctor["id"], [product["id"]], "Notes")
        await submit_visit(
            mr["id"], doctor["id"], [product["id"]], "With orders",
            orders=[{"product_id": product["id"], "quantity": 2}, {"product_id": product["id"], "quantity": 1}],
        )
        # legacy row with broken arrays
        await mock_db.visit_reports.insert_one(
            {"id": "legacy", "mr_id": mr["id"], "products_discussed": None, "orders": {"bad": True}}
        )

        stats = await reporting.dashboard_stats()

        assert stats["totals"]["visits"] == 6
        assert stats["totals"]["orders"] == 2
        assert stats["totals"]["order_value"] == 300.0
        assert stats["totals"]["mrs"] == 1
        assert stats["totals"]["pending_requests"] == 1
        assert stats["orders_by_status"]["Pending"] == 2
        assert stats["top_discussed_products"] == [{"name": "Coldex Syrup", "count": 5}]
        # 6 visits, 2 orders -> round(2/6*50 + 50) = 67
        assert stats["mr_performance"][0]["performance_score"] == 67

    async def test_mr_dashboard(self, mock_db, mr):
        product = await insert_product(mock_db, "Coldex Syrup", 100.0)
        doctor = await insert_doctor(mock_db)
        await submit_visit(mr["id"], doctor["id"], [product["id"]], "Notes",
                           orders=[{"product_id": product["id"], "quantity": 1}])

        data = await reporting.mr_dashboard(mr)

        assert data["totals"] == {"visits": 1, "orders": 1, "order_value": 100.0, "doctors_visited": 1}
        assert data["performance_score"] == 100
        assert data["targets"] == []
