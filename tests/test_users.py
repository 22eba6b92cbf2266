from datetime import datetime, timedelta

from conftest import fetch, future_date, past_date
from database import SessionLocal
from models_orm import UserORM, TimeSlotORM, TransactionORM
from service_modules.base import record_transaction


# --- PROFILE ---

def test_profile_update_and_metrics(client, make_user):
    user = make_user()
    response = client.put("/api/profile", json={"first_name": "Ana", "height": 170}, headers=user["headers"])
    assert response.json()["name"] == "Ana"

    client.post("/api/profile/metrics", json={"kind": "weight", "value": 64.5}, headers=user["headers"])
    negative = client.post("/api/profile/metrics", json={"kind": "waist", "value": -1}, headers=user["headers"])
    assert negative.status_code == 400
    assert negative.json()["detail"] == "Value cannot be negative"

    profile = client.get("/api/profile", headers=user["headers"]).json()
    assert [w["value"] for w in profile["weight"]] == [64.5]
    assert profile["waist_circumference"] == []


def test_health_goals(client, make_user):
    user = make_user()
    client.post("/api/profile/goals", json={"description": "Run 5k"}, headers=user["headers"])
    toggled = client.post("/api/profile/goals/0/toggle", headers=user["headers"]).json()
    assert toggled["health_goals"][0]["completed"] is True
    assert client.post("/api/profile/goals/3/toggle", headers=user["headers"]).status_code == 404


# --- ADMIN ---

def test_search_users(client, admin, make_user):
    make_user(username="alice", first_name="Alice")
    make_user(username="bob", last_name="Alison")
    make_user(username="carol")

    found = client.get("/api/admin/users?search=ali", headers=admin["headers"]).json()
    assert sorted(u["username"] for u in found) == ["alice", "bob"]


def test_user_totals(client, admin, make_user):
    recent = datetime.utcnow().isoformat()
    stale = (datetime.utcnow() - timedelta(days=90)).isoformat()
    make_user(refill_date=recent)
    make_user(refill_date=stale)
    make_user(is_free=True)

    totals = client.get("/api/admin/users/totals", headers=admin["headers"]).json()
    assert totals == {"total_users": 4, "active_users": 2}


def test_low_balance_ordering(client, admin, make_user):
    both_low = make_user(first_name="Both", phone="1", wallet=5, private_token=1, public_token=5)
    tokens_low = make_user(first_name="Tokens", phone="2", wallet=50, private_token=1, public_token=3)
    credits_low = make_user(first_name="Credits", phone="3", wallet=8, private_token=3, public_token=3)
    make_user(first_name="Empty", phone="4")
    make_user(first_name="NoPhone", wallet=5)
    make_user(first_name="Free", phone="5", wallet=5, is_free=True)
    make_user(first_name="Rich", phone="6", wallet=100, private_token=5, public_token=5)

    rows = client.get("/api/admin/users/low-balances", headers=admin["headers"]).json()
    assert [r["id"] for r in rows] == [both_low["id"], credits_low["id"], tokens_low["id"]]


def test_set_role(client, admin, make_user):
    user = make_user()
    assert client.put(f"/api/admin/users/{user['id']}/role", json={"role": "admin"}, headers=admin["headers"]).status_code == 200
    assert fetch(UserORM, user["id"]).role == "admin"
    assert client.put(f"/api/admin/users/{user['id']}/role", json={"role": "owner"}, headers=admin["headers"]).status_code == 400


def test_delete_user_keeps_past_sessions(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    past_id = make_slot(make_activity(), make_coach(), past_date(), booked=True, user_id=user["id"])
    db = SessionLocal()
    record_transaction(db, user["id"], "Credits refilled: +10", "credit_refill", 10, "credits")
    db.commit()
    db.close()

    assert client.delete(f"/api/admin/users/{user['id']}", headers=admin["headers"]).status_code == 200
    assert fetch(UserORM, user["id"]) is None
    slot = fetch(TimeSlotORM, past_id)
    assert slot.booked and slot.user_id is None

    db = SessionLocal()
    assert db.query(TransactionORM).filter(TransactionORM.user_id == user["id"]).count() == 0
    db.close()


def test_delete_user_with_upcoming_reservation(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    make_slot(make_activity(), make_coach(), future_date(), booked=True, user_id=user["id"])
    response = client.delete(f"/api/admin/users/{user['id']}", headers=admin["headers"])
    assert response.status_code == 400
    assert fetch(UserORM, user["id"]) is not None


def test_admin_cannot_delete_self(client, admin):
    assert client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"]).status_code == 400
