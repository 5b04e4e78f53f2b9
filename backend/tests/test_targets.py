"""
Pharma Field Sales - Targets and achievement tests.
Run: cd backend && pytest tests/test_targets.py -v
"""

import pytest

from services import targets as target_service
from services.order_state_machine import update_order_status
from services.visit_reports import submit_visit, approve_visit
from services.errors import ValidationError, NotFoundError, ForbiddenError
from tests.conftest import insert_user, insert_product, insert_doctor


def target_payload(mr_id, visits=10, sales=1000.0, orders=4, start="2026-03-01", end="2026-03-31"):
    return {
        "mr_id": mr_id,
        "period": {
            "type": "Monthly",
            "start_date": f"{start}T00:00:00+00:00",
            "end_date": f"{end}T00:00:00+00:00",
            "month": 3,
            "year": 2026,
        },
        "visit_targets": {"total_visits": visits},
        "sales_targets": {"total_sales_value": sales, "total_orders": orders},
        "territory_targets": {},
        "notes": "",
    }


class TestPercentages:

    def test_zero_target_gives_zero(self):
        target = {
            "achievements": {"visits_completed": 5, "sales_achieved": 300.0, "orders_completed": 2},
            "visit_targets": {"total_visits": 0},
            "sales_targets": {"total_sales_value": 0, "total_orders": 0},
        }
        assert target_service.achievement_percentages(target) == {"visits": 0.0, "sales": 0.0, "orders": 0.0}

    def test_missing_sections_give_zero(self):
        assert target_service.achievement_percentages({}) == {"visits": 0.0, "sales": 0.0, "orders": 0.0}

    def test_regular_ratio(self):
        assert target_service.percentage(3, 4) == 75.0
        assert target_service.percentage(1, 3) == 33.33
        assert target_service.percentage(12, 10) == 120.0


class TestCreateTarget:

    async def test_sequential_ids(self, mock_db, admin, mr):
        first = await target_service.create_target(target_payload(mr["id"]), admin)
        second = await target_service.create_target(
            target_payload(mr["id"], start="2026-04-01", end="2026-04-30"), admin
        )
        assert first["target_id"] == "TGT0001"
        assert second["target_id"] == "TGT0002"
        assert first["assigned_by"] == admin["id"]
        assert first["status"] == "Active"

    async def test_ids_not_reused_after_delete(self, mock_db, admin, mr):
        first = await target_service.create_target(target_payload(mr["id"]), admin)
        await target_service.delete_target(first["id"])
        again = await target_service.create_target(target_payload(mr["id"]), admin)
        assert again["target_id"] == "TGT0002"

    async def test_duplicate_active_period_refused(self, mock_db, admin, mr):
        await target_service.create_target(target_payload(mr["id"]), admin)
        with pytest.raises(ValidationError):
            await target_service.create_target(target_payload(mr["id"]), admin)

    async def test_only_for_mrs(self, mock_db, admin):
        with pytest.raises(ValidationError):
            await target_service.create_target(target_payload(admin["id"]), admin)

    async def test_unknown_mr(self, mock_db, admin):
        with pytest.raises(NotFoundError):
            await target_service.create_target(target_payload("ghost"), admin)


class TestAchievements:

    async def test_recomputed_on_read_and_written_back(self, mock_db, admin, mr):
        product = await insert_product(mock_db, "Coldex Syrup", 100.0)
        known_doctor = await insert_doctor(mock_db, name="Dr. Old")
        new_doctor = await insert_doctor(mock_db, name="Dr. New")

        # before the period: Dr. Old is not new anymore
        await submit_visit(mr["id"], known_doctor["id"], [], "Feb visit", visit_date="2026-02-20")

        delivered = await submit_visit(
            mr["id"], new_doctor["id"], [product["id"]], "Order", visit_date="2026-03-05",
            orders=[{"product_id": product["id"], "quantity": 3}],
        )
        order_id = delivered["orders"][0]["id"]
        for status in ("Confirmed", "Shipped", "Delivered"):
            await update_order_status(delivered["id"], status, order_id=order_id)
        await approve_visit(delivered["id"], admin)

        await submit_visit(
            mr["id"], known_doctor["id"], [], "Pending order", visit_date="2026-03-31T17:00:00",
            orders=[{"product_id": product["id"], "quantity": 1}],
        )
        rejected = await submit_visit(mr["id"], known_doctor["id"], [], "Rejected", visit_date="2026-03-10")
        await mock_db.visit_reports.update_one({"id": rejected["id"]}, {"$set": {"status": "Rejected"}})
        await submit_visit(mr["id"], known_doctor["id"], [], "April", visit_date="2026-04-01")

        target = await target_service.create_target(target_payload(mr["id"], visits=4, sales=600.0, orders=2), admin)

        targets = await target_service.get_targets_for_mr(mr["id"], admin)

        achievements = targets[0]["achievements"]
        # only the approved visit counts, the submitted and rejected ones do not
        assert achievements["visits_completed"] == 1
        assert achievements["orders_completed"] == 1
        assert achievements["sales_achieved"] == 300.0
        assert achievements["new_doctors_added"] == 1
        assert achievements["last_updated"]
        assert targets[0]["percentages"] == {"visits": 25.0, "sales": 50.0, "orders": 50.0}

        stored = await mock_db.targets.find_one({"id": target["id"]}, {"_id": 0})
        assert stored["achievements"]["sales_achieved"] == 300.0

    async def test_only_reviewed_visits_count(self, mock_db, admin, mr):
        doctor = await insert_doctor(mock_db)
        first = await submit_visit(mr["id"], doctor["id"], [], "Submitted", visit_date="2026-03-10")
        second = await submit_visit(mr["id"], doctor["id"], [], "Later", visit_date="2026-03-12")
        await target_service.create_target(target_payload(mr["id"], visits=10), admin)

        targets = await target_service.get_targets_for_mr(mr["id"], admin)
        assert first["status"] == "Submitted"
        assert targets[0]["achievements"]["visits_completed"] == 0
        assert targets[0]["percentages"]["visits"] == 0.0

        await approve_visit(first["id"], admin)
        await mock_db.visit_reports.update_one({"id": second["id"]}, {"$set": {"status": "Completed"}})

        targets = await target_service.get_targets_for_mr(mr["id"], admin)
        assert targets[0]["achievements"]["visits_completed"] == 2
        assert targets[0]["percentages"]["visits"] == 20.0

    async def test_mr_cannot_read_someone_elses_targets(self, mock_db, mr):
        other = await insert_user(mock_db, role="MR")
        with pytest.raises(ForbiddenError):
            await target_service.get_targets_for_mr(other["id"], mr)

    async def test_list_restricted_for_mr(self, mock_db, admin, mr):
        other = await insert_user(mock_db, role="MR")
        await target_service.create_target(target_payload(mr["id"]), admin)
        await target_service.create_target(target_payload(other["id"]), admin)

        assert len(await target_service.list_targets(admin)) == 2
        own = await target_service.list_targets(mr, mr_id=other["id"])
        assert [t["mr_id"] for t in own] == [mr["id"]]

    async def test_update_status(self, mock_db, admin, mr):
        target = await target_service.create_target(target_payload(mr["id"]), admin)
        updated = await target_service.update_target(target["id"], {"status": "Completed", "notes": None})
        assert updated["status"] == "Completed"
        assert "percentages" in updated

    async def test_reactivating_duplicate_period_refused(self, mock_db, admin, mr):
        old = await target_service.create_target(target_payload(mr["id"]), admin)
        await target_service.update_target(old["id"], {"status": "Cancelled"})
        await target_service.create_target(target_payload(mr["id"]), admin)

        with pytest.raises(ValidationError):
            await target_service.update_target(old["id"], {"status": "Active"})
        stored = await mock_db.targets.find_one({"id": old["id"]}, {"_id": 0})
        assert stored["status"] == "Cancelled"

    async def test_reactivating_free_period_allowed(self, mock_db, admin, mr):
        target = await target_service.create_target(target_payload(mr["id"]), admin)
        await target_service.update_target(target["id"], {"status": "Cancelled"})
        updated = await target_service.update_target(target["id"], {"status": "Active"})
        assert updated["status"] == "Active"
