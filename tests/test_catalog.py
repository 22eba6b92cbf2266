import os

from conftest import fetch, future_date
from models_orm import ActivityORM, CoachORM, TimeSlotORM


# --- ACTIVITIES ---

def test_activity_classification(client, admin):
    def create(name, capacity, semi_private=False):
        return client.post("/api/admin/activities", json={
            "name": name, "credits": 20, "capacity": capacity, "semi_private": semi_private
        }, headers=admin["headers"]).json()

    private = create("Personal Training", 1)
    duo = create("Duo", 3, semi_private=True)
    big_semi = create("Crowd", 8, semi_private=True)
    hiit = create("HIIT", 12)

    assert (private["group"], private["semi_private"]) == (False, False)
    assert (duo["group"], duo["semi_private"]) == (False, True)
    assert (big_semi["group"], big_semi["semi_private"]) == (True, False)
    assert (hiit["group"], hiit["semi_private"]) == (True, False)

    names = lambda kind: [a["name"] for a in client.get(f"/api/activities?kind={kind}", headers=admin["headers"]).json()]  # noqa: E731
    assert names("private") == ["Personal Training"]
    assert names("group") == ["Crowd", "Duo", "HIIT"]
    assert len(names("all")) == 4


def test_update_activity_reclassifies(client, admin, make_activity):
    activity_id = make_activity(capacity=1)
    updated = client.put(f"/api/admin/activities/{activity_id}", json={"capacity": 10}, headers=admin["headers"]).json()
    assert updated["group"] is True
    assert fetch(ActivityORM, activity_id).capacity == 10


def test_activity_validation(client, admin):
    response = client.post("/api/admin/activities", json={"name": "Bad", "credits": 10, "capacity": 0},
                           headers=admin["headers"])
    assert response.status_code == 400


def test_delete_activity_with_upcoming_booking(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    coach_id, activity_id = make_coach(), make_activity()
    make_slot(activity_id, coach_id, booked=True, user_id=user["id"])

    response = client.delete(f"/api/admin/activities/{activity_id}", headers=admin["headers"])
    assert response.status_code == 400
    assert fetch(ActivityORM, activity_id) is not None


def test_delete_activity_removes_open_slots(client, admin, make_coach, make_activity, make_slot):
    coach_id, activity_id = make_coach(), make_activity()
    slot_id = make_slot(activity_id, coach_id)

    assert client.delete(f"/api/admin/activities/{activity_id}", headers=admin["headers"]).status_code == 200
    assert fetch(ActivityORM, activity_id) is None
    assert fetch(TimeSlotORM, slot_id) is None


# --- COACHES ---

def test_create_coach_with_picture(client, admin):
    response = client.post(
        "/api/admin/coaches",
        data={"name": "Maya", "email": "maya@studio.com"},
        files={"profile_picture": ("maya.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        headers=admin["headers"]
    )
    assert response.status_code == 200
    picture = response.json()["profile_picture"]
    assert picture.startswith("/static/uploads/coaches/") and picture.endswith(".png")
    stored = os.path.join(os.environ["UPLOAD_DIR"], picture[len("/static/uploads/"):])
    assert os.path.exists(stored)


def test_create_coach_rejects_non_image(client, admin):
    response = client.post(
        "/api/admin/coaches",
        data={"name": "Maya", "email": "maya@studio.com"},
        files={"profile_picture": ("notes.txt", b"hello", "text/plain")},
        headers=admin["headers"]
    )
    assert response.status_code == 400


def test_delete_coach_unassigns_activities(client, admin, make_coach):
    coach_id = make_coach()
    activity = client.post("/api/admin/activities", json={"name": "Yoga", "credits": 15, "coach_id": coach_id},
                           headers=admin["headers"]).json()

    assert client.delete(f"/api/admin/coaches/{coach_id}", headers=admin["headers"]).status_code == 200
    assert fetch(CoachORM, coach_id) is None
    assert fetch(ActivityORM, activity["id"]).coach_id is None


def test_coaches_for_activity_only_with_open_slots(client, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    busy, free, idle = make_coach("Busy"), make_coach("Free"), make_coach("Idle")
    activity_id = make_activity()
    make_slot(activity_id, busy, booked=True, user_id=user["id"])
    make_slot(activity_id, free)

    coaches = client.get(f"/api/activities/{activity_id}/coaches", headers=user["headers"]).json()
    assert [c["name"] for c in coaches] == ["Free"]


# --- SLOTS ---

def test_bulk_slots_skip_duplicates(client, admin, make_coach, make_activity):
    coach_id, activity_id = make_coach(), make_activity()
    days = [future_date(1), future_date(2)]
    payload = {"activity_id": activity_id, "coach_id": coach_id, "dates": days, "start_time": "09:00", "end_time": "10:00"}

    first = client.post("/api/admin/slots/bulk", json=payload, headers=admin["headers"]).json()
    assert first["created"] == 2 and first["group"] is False

    payload["dates"] = days + [future_date(3)]
    second = client.post("/api/admin/slots/bulk", json=payload, headers=admin["headers"]).json()
    assert (second["created"], second["skipped"]) == (1, 2)


def test_group_activity_slots_go_to_group_schedule(client, admin, make_coach, make_activity):
    coach_id = make_coach()
    activity_id = make_activity(name="Spin", capacity=10, group=True)
    created = client.post("/api/admin/slots", json={
        "activity_id": activity_id, "coach_id": coach_id, "date": future_date(),
        "start_time": "18:00", "end_time": "19:00"
    }, headers=admin["headers"]).json()
    assert created["group"] is True

    group_slots = client.get("/api/admin/slots?group=true", headers=admin["headers"]).json()
    assert [s["id"] for s in group_slots] == created["slot_ids"]
    assert client.get("/api/admin/slots", headers=admin["headers"]).json() == []


def test_slot_times_validated(client, admin, make_coach, make_activity):
    response = client.post("/api/admin/slots", json={
        "activity_id": make_activity(), "coach_id": make_coach(), "date": future_date(),
        "start_time": "11:00", "end_time": "10:00"
    }, headers=admin["headers"])
    assert response.status_code == 400


def test_cannot_delete_booked_slot(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    slot_id = make_slot(make_activity(), make_coach(), booked=True, user_id=user["id"])
    assert client.delete(f"/api/admin/slots/{slot_id}", headers=admin["headers"]).status_code == 400


def test_available_slots_and_my_reservations(client, make_user, make_coach, make_activity, make_slot):
    user = make_user(wallet=100)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    open_id = make_slot(activity_id, coach_id, day, "08:00", "09:00")
    mine_id = make_slot(activity_id, coach_id, day, "10:00", "11:00", booked=True, user_id=user["id"])

    available = client.get(f"/api/slots/available?activity_id={activity_id}", headers=user["headers"]).json()
    assert [s["id"] for s in available] == [open_id]

    mine = client.get("/api/slots/mine", headers=user["headers"]).json()
    assert [s["id"] for s in mine["individual"]] == [mine_id]
    assert mine["group"] == []
