"""
Pharma Field Sales - Visit report submission and reads.
Run: cd backend && pytest tests/test_visit_reports.py -v
"""

import pytest

from services import visit_reports
from services.errors import ValidationError, NotFoundError, ForbiddenError, InvalidStateError
from tests.conftest import insert_user, insert_product, insert_doctor


@pytest.fixture
async def catalog(mock_db):
    syrup = await insert_product(mock_db, "Coldex Syrup", 100.0)
    tablet = await insert_product(mock_db, "Paracip 500", 32.5)
    return syrup, tablet


# ═══════════════════════════════════════════════════════════════
# 1. SUBMISSION
# ═══════════════════════════════════════════════════════════════

class TestSubmitVisit:

    async def test_two_products_one_order(self, mock_db, mr, catalog):
        syrup, tablet = catalog
        doctor = await insert_doctor(mock_db)

        visit = await visit_reports.submit_visit(
            mr_id=mr["id"],
            doctor_id=doctor["id"],
            product_ids=[syrup["id"], tablet["id"]],
            notes="Discussed dosage for children",
            visit_date="2026-03-14",
            orders=[{"product_id": syrup["id"], "quantity": 3}],
        )

        assert len(visit["products_discussed"]) == 2
        order = visit["orders"][0]
        assert order["unit_price"] == 100.0
        assert order["total_amount"] == 300
        assert order["status"] == "Pending"
        assert order["order_type"] == "Doctor Order"
        assert order["product_name"] == "Coldex Syrup"
        assert order["id"]
        assert order["order_number"] == "ORD000001"
        assert visit["visit_number"] == "VIS000001"
        assert visit["status"] == "Submitted"
        assert visit["visit_date"].startswith("2026-03-14")

        stored = await mock_db.visit_reports.find_one({"id": visit["id"]}, {"_id": 0})
        assert stored["orders"][0]["total_amount"] == 300

    async def test_price_snapshot_survives_price_change(self, mock_db, mr, catalog):
        syrup, _ = catalog
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(
            mr["id"], doctor["id"], [syrup["id"]], "Order placed",
            orders=[{"product_id": syrup["id"], "quantity": 2}],
        )

        await mock_db.products.update_one({"id": syrup["id"]}, {"$set": {"business_info.mrp": 150.0}})

        stored = await mock_db.visit_reports.find_one({"id": visit["id"]}, {"_id": 0})
        assert stored["orders"][0]["unit_price"] == 100.0
        assert stored["orders"][0]["total_amount"] == 200.0

    async def test_duplicate_products_collapse(self, mock_db, mr, catalog):
        syrup, tablet = catalog
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(
            mr["id"], doctor["id"], [syrup["id"], tablet["id"], syrup["id"]], "Notes"
        )
        assert visit["products_discussed"] == [syrup["id"], tablet["id"]]
        assert visit["orders"] == []

    async def test_notes_required(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(mr["id"], doctor["id"], [catalog[0]["id"]], "   ")

    async def test_doctor_required(self, mock_db, mr, catalog):
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(mr["id"], "", [catalog[0]["id"]], "Notes")

    async def test_unknown_doctor(self, mock_db, mr, catalog):
        with pytest.raises(NotFoundError):
            await visit_reports.submit_visit(mr["id"], "ghost", [catalog[0]["id"]], "Notes")

    async def test_unknown_product_writes_nothing(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(mr["id"], doctor["id"], [catalog[0]["id"], "ghost"], "Notes")
        assert await mock_db.visit_reports.count_documents({}) == 0

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True, "3", None])
    async def test_quantity_must_be_positive_int(self, mock_db, mr, catalog, quantity):
        doctor = await insert_doctor(mock_db)
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(
                mr["id"], doctor["id"], [], "Notes",
                orders=[{"product_id": catalog[0]["id"], "quantity": quantity}],
            )

    async def test_order_for_unknown_product(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(
                mr["id"], doctor["id"], [], "Notes", orders=[{"product_id": "ghost", "quantity": 1}]
            )

    async def test_doctor_of_another_mr(self, mock_db, mr, catalog):
        other = await insert_user(mock_db, role="MR")
        doctor = await insert_doctor(mock_db, assigned_mr_id=other["id"])
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")

    async def test_inactive_doctor_refused(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        await mock_db.doctors.update_one({"id": doctor["id"]}, {"$set": {"is_active": False}})
        with pytest.raises(ValidationError, match="inactive"):
            await visit_reports.submit_visit(mr["id"], doctor["id"], [catalog[0]["id"]], "Notes")
        assert await mock_db.visit_reports.count_documents({}) == 0

    async def test_bad_visit_date(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        with pytest.raises(ValidationError):
            await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes", visit_date="14/03/2026")

    async def test_orders_not_a_list_reads_as_none(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes", orders={"oops": 1})
        assert visit["orders"] == []


# ═══════════════════════════════════════════════════════════════
# 2. READS
# ═══════════════════════════════════════════════════════════════

class TestListVisits:

    async def seed(self, db, mr, catalog):
        other = await insert_user(db, role="MR", name="Other MR")
        doctor = await insert_doctor(db)
        await visit_reports.submit_visit(mr["id"], doctor["id"], [catalog[0]["id"]], "A", visit_date="2026-03-01")
        await visit_reports.submit_visit(mr["id"], doctor["id"], [catalog[1]["id"]], "B", visit_date="2026-03-31T18:30:00")
        await visit_reports.submit_visit(other["id"], doctor["id"], [], "C", visit_date="2026-04-02")
        return other

    async def test_admin_sees_all(self, mock_db, mr, admin, catalog):
        await self.seed(mock_db, mr, catalog)
        visits = await visit_reports.list_visits(admin)
        assert len(visits) == 3
        assert visits[0]["visit_date"] > visits[-1]["visit_date"]

    async def test_mr_only_sees_own_even_with_filter(self, mock_db, mr, catalog):
        other = await self.seed(mock_db, mr, catalog)
        visits = await visit_reports.list_visits(mr, mr_id=other["id"])
        assert {v["mr_id"] for v in visits} == {mr["id"]}

    async def test_date_only_end_covers_whole_day(self, mock_db, mr, admin, catalog):
        await self.seed(mock_db, mr, catalog)
        visits = await visit_reports.list_visits(admin, start_date="2026-03-01", end_date="2026-03-31")
        assert sorted(v["notes"] for v in visits) == ["A", "B"]

    async def test_enriched_names(self, mock_db, mr, admin, catalog):
        await self.seed(mock_db, mr, catalog)
        visits = await visit_reports.list_visits(admin, mr_id=mr["id"], start_date="2026-03-01", end_date="2026-03-01")
        assert visits[0]["mr_name"] == "Rahul Patil"
        assert visits[0]["doctor_name"] == "Dr. Kulkarni"
        assert visits[0]["products_discussed_names"] == ["Coldex Syrup"]

    async def test_invalid_date_filter(self, mock_db, admin):
        with pytest.raises(ValidationError):
            await visit_reports.list_visits(admin, start_date="yesterday")

    async def test_get_other_mrs_visit_forbidden(self, mock_db, mr, catalog):
        other = await insert_user(mock_db, role="MR")
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(other["id"], doctor["id"], [], "Notes")
        with pytest.raises(ForbiddenError):
            await visit_reports.get_visit(visit["id"], mr)

    async def test_list_orders_flattened(self, mock_db, mr, admin, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(
            mr["id"], doctor["id"], [], "Notes",
            orders=[
                {"product_id": catalog[0]["id"], "quantity": 1},
                {"product_id": catalog[1]["id"], "quantity": 4, "order_type": "Stockist Order"},
            ],
        )
        # legacy row with a malformed orders field
        await mock_db.visit_reports.insert_one({"id": "legacy", "mr_id": mr["id"], "orders": None})

        orders = await visit_reports.list_orders(admin)
        assert len(orders) == 2
        assert all(o["visit_id"] == visit["id"] for o in orders)

        stockist = await visit_reports.list_orders(admin, order_type="Stockist Order")
        assert [o["quantity"] for o in stockist] == [4]


# ═══════════════════════════════════════════════════════════════
# 3. REVIEW / DELETE
# ═══════════════════════════════════════════════════════════════

class TestReviewAndDelete:

    async def test_approve_then_approve_again(self, mock_db, mr, admin, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")

        approved = await visit_reports.approve_visit(visit["id"], admin)
        assert approved["status"] == "Approved"
        assert approved["approved_by"] == admin["id"]

        with pytest.raises(InvalidStateError):
            await visit_reports.approve_visit(visit["id"], admin)

    async def test_reject_stores_reason(self, mock_db, mr, admin, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")
        rejected = await visit_reports.reject_visit(visit["id"], admin, "Duplicate entry")
        assert rejected["status"] == "Rejected"
        assert rejected["rejection_reason"] == "Duplicate entry"

    async def test_mr_cannot_delete_submitted_visit(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")
        with pytest.raises(InvalidStateError):
            await visit_reports.delete_visit(visit["id"], mr)

    async def test_mr_deletes_own_draft(self, mock_db, mr, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")
        await mock_db.visit_reports.update_one({"id": visit["id"]}, {"$set": {"status": "Pending"}})

        await visit_reports.delete_visit(visit["id"], mr)
        assert await mock_db.visit_reports.count_documents({}) == 0

    async def test_admin_deletes_any(self, mock_db, mr, admin, catalog):
        doctor = await insert_doctor(mock_db)
        visit = await visit_reports.submit_visit(mr["id"], doctor["id"], [], "Notes")
        await visit_reports.delete_visit(visit["id"], admin)
        assert await mock_db.visit_reports.count_documents({}) == 0
