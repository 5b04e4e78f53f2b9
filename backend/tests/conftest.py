"""
Shared fixtures.

The Motor database handle is swapped for an in-memory mongomock-motor
database in every module that imported it, so the suite needs no server.
Email goes to a recording fake instead of SendGrid.
"""

import sys
import uuid
from datetime import datetime, timezone, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import config
import server
from config import hash_password, generate_token, now_iso
from email_service import email_service

ADMIN_PASSWORD = "AdminPass2026"
MR_PASSWORD = "MrPass2026!"


@pytest.fixture
def mock_db(monkeypatch):
    """Fresh in-memory database patched over every module-level `db`."""
    real_db = config.db
    fake_db = AsyncMongoMockClient()["pharma_field_sales_test"]
    for module in list(sys.modules.values()):
        if module is not None and getattr(module, "db", None) is real_db:
            monkeypatch.setattr(module, "db", fake_db)
    return fake_db


class EmailRecorder:
    def __init__(self):
        self.sent = []
        self.succeed = True

    def __call__(self, to_email, subject, html_content):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return self.succeed

    def to(self, email):
        return [m for m in self.sent if m["to"] == email]


@pytest.fixture
def outbox(monkeypatch):
    recorder = EmailRecorder()
    monkeypatch.setattr(email_service, "_send_email", recorder)
    return recorder


@pytest.fixture
def api(mock_db, outbox):
    """TestClient without the context manager, so startup hooks do not touch Mongo."""
    return TestClient(server.app)


# ==================== DATA HELPERS ====================

async def insert_user(db, role="MR", email=None, password=MR_PASSWORD, first_login=False, **extra):
    user = {
        "id": str(uuid.uuid4()),
        "name": extra.pop("name", f"{role} User"),
        "email": email or f"{uuid.uuid4().hex[:8]}@pharma.test",
        "password": hash_password(password),
        "role": role,
        "territory": "Pune",
        "first_login": first_login,
        "is_active": True,
        "created_at": now_iso(),
        **extra,
    }
    await db.users.insert_one(user)
    user.pop("_id", None)
    return user


async def open_session(db, user):
    token = generate_token()
    await db.sessions.insert_one({
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
    })
    return {"Authorization": f"Bearer {token}"}


async def insert_product(db, name, mrp, product_id=None, category="General"):
    product = {
        "id": str(uuid.uuid4()),
        "basic_info": {"name": name, "category": category},
        "medical_info": {"composition": "", "dosage_form": "Tablet"},
        "business_info": {"mrp": mrp},
        "is_active": True,
        "created_at": now_iso(),
    }
    if product_id:
        product["product_id"] = product_id
    await db.products.insert_one(product)
    product.pop("_id", None)
    return product


async def insert_doctor(db, name="Dr. Kulkarni", assigned_mr_id=None, specialization="Physician"):
    doctor = {
        "id": str(uuid.uuid4()),
        "name": name,
        "place": "Pune",
        "specialization": specialization,
        "qualification": "MBBS",
        "assigned_mr_id": assigned_mr_id,
        "is_active": True,
        "created_at": now_iso(),
    }
    await db.doctors.insert_one(doctor)
    doctor.pop("_id", None)
    return doctor


@pytest.fixture
async def admin(mock_db):
    return await insert_user(mock_db, role="Admin", email="admin@pharma.test", password=ADMIN_PASSWORD)


@pytest.fixture
async def mr(mock_db):
    return await insert_user(mock_db, role="MR", email="mr@pharma.test", name="Rahul Patil", employee_id="MR001")


@pytest.fixture
async def admin_headers(mock_db, admin):
    return await open_session(mock_db, admin)


@pytest.fixture
async def mr_headers(mock_db, mr):
    return await open_session(mock_db, mr)
