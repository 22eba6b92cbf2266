import os
import sys
import tempfile
import uuid
from datetime import date, timedelta

import pytest

_tmp_dir = tempfile.mkdtemp(prefix="studio_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test_studio.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_tmp_dir, "uploads")
os.environ.pop("SMTP_HOST", None)
os.environ.pop("OPENAI_API_KEY", None)

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient  # noqa: E402
from database import Base, engine, SessionLocal  # noqa: E402
from models_orm import (  # noqa: E402
    UserORM, CoachORM, ActivityORM, TimeSlotORM, GroupTimeSlotORM, MarketItemORM
)
from auth import create_access_token  # noqa: E402
from service_modules.base import dump_json  # noqa: E402
from service_modules.health_chat_service import health_chat_service  # noqa: E402
from main import app  # noqa: E402


def future_date(days: int = 3) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def past_date(days: int = 3) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    health_chat_service.reset_rate_limit()
    yield


@pytest.fixture
def client():
    return TestClient(app)


def _add(obj):
    db = SessionLocal()
    try:
        db.add(obj)
        db.commit()
        return obj.id
    finally:
        db.close()


@pytest.fixture
def make_user():
    def _make(role="user", **fields):
        username = fields.pop("username", f"user_{uuid.uuid4().hex[:8]}")
        user = UserORM(
            id=str(uuid.uuid4()),
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            hashed_password="not-used",
            role=role,
            is_active=True,
            **fields
        )
        user_id = _add(user)
        token = create_access_token({"sub": username})
        return {"id": user_id, "username": username, "headers": {"Authorization": f"Bearer {token}"}}
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role="admin")


@pytest.fixture
def make_coach():
    def _make(name="Coach Carter"):
        return _add(CoachORM(id=str(uuid.uuid4()), name=name, email=f"{uuid.uuid4().hex[:6]}@studio.com"))
    return _make


@pytest.fixture
def make_activity():
    def _make(name="Personal Training", credits=30, capacity=1, group=False, semi_private=False):
        return _add(ActivityORM(
            id=str(uuid.uuid4()), name=name, credits=credits, capacity=capacity,
            is_group=group, is_semi_private=semi_private
        ))
    return _make


@pytest.fixture
def make_slot():
    def _make(activity_id, coach_id, slot_date=None, start="10:00", end="11:00", **fields):
        return _add(TimeSlotORM(
            id=str(uuid.uuid4()), activity_id=activity_id, coach_id=coach_id,
            date=slot_date or future_date(), start_time=start, end_time=end,
            booked=fields.pop("booked", False), booked_with_token=fields.pop("booked_with_token", False),
            additions_json=dump_json([]), **fields
        ))
    return _make


@pytest.fixture
def make_group_slot():
    def _make(activity_id, coach_id, slot_date=None, start="18:00", end="19:00", user_ids=None, token_users=None):
        user_ids = user_ids or []
        return _add(GroupTimeSlotORM(
            id=str(uuid.uuid4()), activity_id=activity_id, coach_id=coach_id,
            date=slot_date or future_date(), start_time=start, end_time=end,
            user_ids_json=dump_json(user_ids), count=len(user_ids), booked=False,
            booked_with_token_json=dump_json(token_users or []), additions_json=dump_json([])
        ))
    return _make


@pytest.fixture
def make_item():
    def _make(name="Protein Shake", price=6, quantity=10, is_clothing=False):
        return _add(MarketItemORM(id=str(uuid.uuid4()), name=name, price=price, quantity=quantity, is_clothing=is_clothing))
    return _make


def fetch(model, obj_id):
    """Load a row in a fresh session so the test sees committed state."""
    db = SessionLocal()
    try:
        obj = db.query(model).filter(model.id == obj_id).first()
        if obj is not None:
            db.expunge(obj)
        return obj
    finally:
        db.close()
