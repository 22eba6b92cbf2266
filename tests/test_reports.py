import csv
import io
from datetime import date

from conftest import future_date, past_date
from database import SessionLocal
from service_modules.base import record_transaction


def _seed_ledger(user_id):
    db = SessionLocal()
    record_transaction(db, user_id, "Credits refilled: +100", "credit_refill", 100, "credits")
    record_transaction(db, user_id, "Booked Personal Training", "individual_session", -30, "credits")
    record_transaction(db, user_id, "Booked with token", "individual_session", -1, "private_token")
    db.commit()
    db.close()


# --- DASHBOARD ---

def test_dashboard_totals_and_today(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user(first_name="Nina", last_name="Ross")
    coach_id = make_coach("Coach Carter")
    activity_id = make_activity(name="Personal Training")
    today = date.today().isoformat()
    make_slot(activity_id, coach_id, today, "00:00", "23:59", booked=True, user_id=user["id"])
    make_slot(activity_id, coach_id, today, "00:00", "23:59")

    totals = client.get("/api/admin/dashboard", headers=admin["headers"]).json()
    assert totals == {"total_activities": 1, "total_coaches": 1, "todays_sessions": 1}

    today_sessions = client.get("/api/admin/dashboard/today", headers=admin["headers"]).json()
    assert len(today_sessions) == 1
    assert today_sessions[0]["coach_name"] == "Coach Carter"
    assert today_sessions[0]["activity_name"] == "Personal Training"
    assert today_sessions[0]["users"] == ["Nina Ross"]


def test_dashboard_requires_admin(client, make_user):
    user = make_user()
    assert client.get("/api/admin/dashboard", headers=user["headers"]).status_code == 403


# --- SESSION HISTORY ---

def test_completed_sessions(client, make_user, make_coach, make_activity, make_slot, make_group_slot):
    user = make_user()
    coach_id = make_coach()
    private_id = make_activity(name="Boxing")
    group_id = make_activity(name="Spin", capacity=10, group=True)
    make_slot(private_id, coach_id, past_date(2), booked=True, user_id=user["id"])
    make_slot(private_id, coach_id, past_date(5), booked=True, user_id=user["id"])
    make_slot(private_id, coach_id, future_date(), booked=True, user_id=user["id"])
    make_group_slot(group_id, coach_id, past_date(1), user_ids=[user["id"]])

    data = client.get("/api/sessions/completed?limit=2", headers=user["headers"]).json()
    assert data["total_count"] == 3
    assert data["total_pages"] == 2
    assert [s["date"] for s in data["sessions"]] == [past_date(1), past_date(2)]
    assert data["summary"] == {"total_sessions": 3, "total_private_sessions": 2, "total_group_sessions": 1}

    group_only = client.get("/api/sessions/completed?filter=group", headers=user["headers"]).json()
    assert [s["activity_name"] for s in group_only["sessions"]] == ["Spin"]


def test_clients_only_see_their_own_history(client, make_user, make_coach, make_activity, make_slot):
    owner, other = make_user(), make_user()
    make_slot(make_activity(), make_coach(), past_date(), booked=True, user_id=owner["id"])

    data = client.get(f"/api/sessions/completed?user_id={owner['id']}", headers=other["headers"]).json()
    assert data["total_count"] == 0


# --- TRANSACTIONS ---

def test_transactions_report(client, admin, make_user):
    user = make_user(first_name="Ola")
    _seed_ledger(user["id"])

    report = client.get("/api/admin/transactions", headers=admin["headers"]).json()
    assert report["summary"]["total_credits"] == 70
    assert report["summary"]["total_tokens"] == -1
    assert report["summary"]["count"] == 3
    assert report["count_by_type"] == {"credit_refill": 1, "individual_session": 2}
    assert report["transactions"][0]["user_name"] == "Ola"

    by_amount = client.get("/api/admin/transactions?sort_by=amount&sort_order=asc&currency=credits",
                           headers=admin["headers"]).json()
    assert [t["amount"] for t in by_amount["transactions"]] == [-30, 100]

    searched = client.get("/api/admin/transactions?search=refill", headers=admin["headers"]).json()
    assert searched["total_count"] == 1


def test_transactions_csv_export(client, admin, make_user):
    user = make_user(first_name="Ola", last_name="Berg")
    _seed_ledger(user["id"])

    response = client.get("/api/admin/transactions/export?type=credit_refill", headers=admin["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Date", "Description", "Type", "Amount", "Currency", "User ID", "User Name"]
    assert len(rows) == 2
    assert rows[1][2] == "credit_refill" and rows[1][6] == "Ola Berg"


# --- COACH HISTORY ---

def test_coach_history(client, admin, make_user, make_coach, make_activity, make_slot, make_group_slot):
    a, b = make_user(), make_user()
    carter, maya = make_coach("Carter"), make_coach("Maya")
    boxing = make_activity(name="Boxing")
    spin = make_activity(name="Spin", capacity=10, group=True)
    make_slot(boxing, carter, past_date(2), "10:00", "11:00", booked=True, booked_with_token=True, user_id=a["id"])
    make_slot(boxing, carter, past_date(3), "10:00", "11:00", booked=True, user_id=b["id"])
    make_group_slot(spin, maya, past_date(1), user_ids=[a["id"], b["id"]], token_users=[a["id"]])

    data = client.get("/api/admin/coach-history", headers=admin["headers"]).json()
    coaches = {c["coach_name"]: c for c in data["coaches"]}
    assert coaches["Carter"]["individual_sessions"] == 2
    assert coaches["Carter"]["token_usage"] == {"with_token": 1, "without_token": 1}
    assert coaches["Carter"]["popular_time_slots"] == {"10:00": 2}
    assert coaches["Maya"]["group_sessions"] == 1
    assert coaches["Maya"]["token_usage"] == {"with_token": 1, "without_token": 1}
    assert data["summary"]["top_coach"] == {"name": "Carter", "sessions": 2}
    assert data["summary"]["top_activity"] == {"name": "Boxing", "sessions": 2}
    assert data["summary"]["total_sessions"] == 3


def test_coach_history_rejects_inverted_range(client, admin):
    response = client.get("/api/admin/coach-history?start_date=2026-05-10&end_date=2026-05-01", headers=admin["headers"])
    assert response.status_code == 400
