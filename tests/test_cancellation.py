from conftest import fetch, future_date, past_date
from database import SessionLocal
from models_orm import UserORM, TimeSlotORM, GroupTimeSlotORM, MarketItemORM, TransactionORM
from service_modules.base import load_json


def _book_individual(client, user, activity_id, coach_id, day):
    response = client.post("/api/bookings", json={
        "activity_id": activity_id, "coach_id": coach_id, "date": day,
        "start_time": "10:00", "end_time": "11:00"
    }, headers=user["headers"])
    assert response.status_code == 200
    return response.json()["slot_id"]


def test_cancel_refunds_session_and_items(client, make_user, make_coach, make_activity, make_slot, make_item):
    user = make_user(wallet=100, punches=3)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    shake_id = make_item("Protein Shake", price=5, quantity=4)
    towel_id = make_item("Towel", price=2, quantity=4)
    slot_id = _book_individual(client, user, activity_id, coach_id, day)
    client.post(f"/api/bookings/individual/{slot_id}/items", json={"item_ids": [shake_id, towel_id]}, headers=user["headers"])

    response = client.delete(f"/api/bookings/individual/{slot_id}", headers=user["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Reservation cancelled successfully."

    stored = fetch(UserORM, user["id"])
    assert stored.wallet == 95  # 63 after booking and items, +30 session, +2 towel
    assert stored.shake_token == 1  # protein items come back as tokens
    assert stored.punches == 3
    slot = fetch(TimeSlotORM, slot_id)
    assert not slot.booked and slot.user_id is None and load_json(slot.additions_json) == []
    assert fetch(MarketItemORM, shake_id).quantity == 4
    assert fetch(MarketItemORM, towel_id).quantity == 4


def test_cancel_token_booking_returns_token(client, make_user, make_coach, make_activity, make_slot):
    user = make_user(private_token=1)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    slot_id = _book_individual(client, user, activity_id, coach_id, day)

    client.delete(f"/api/bookings/individual/{slot_id}", headers=user["headers"])
    stored = fetch(UserORM, user["id"])
    assert stored.private_token == 1
    assert stored.wallet == 0


def test_cancel_reversing_a_completed_card_is_penalized(client, make_user, make_coach, make_activity, make_slot, make_item):
    user = make_user(wallet=100, punches=8)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    shake_id = make_item("Protein Shake", price=5)
    slot_id = _book_individual(client, user, activity_id, coach_id, day)
    paid = client.post(f"/api/bookings/individual/{slot_id}/items",
                       json={"item_ids": [shake_id, shake_id, shake_id]}, headers=user["headers"]).json()
    assert paid["shake_tokens_awarded"] == 2 and paid["punches"] == 1

    response = client.delete(f"/api/bookings/individual/{slot_id}", headers=user["headers"])
    assert response.status_code == 200
    assert "2 shake tokens deducted" in response.json()["message"]

    stored = fetch(UserORM, user["id"])
    assert stored.wallet == 85  # 55 after booking and shakes, +30 session
    assert stored.punches == 0
    assert stored.shake_token == 3  # 2 awarded, +3 returned, -2 penalty

    db = SessionLocal()
    types = {t.type for t in db.query(TransactionORM).filter(TransactionORM.user_id == user["id"]).all()}
    db.close()
    assert {"session_refund", "market_refund", "punch_card_adjustment", "punch_card_penalty"} <= types


def test_cancel_within_the_current_card_is_not_penalized(client, make_user, make_coach, make_activity, make_slot, make_item):
    user = make_user(wallet=100, punches=2)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    shake_id = make_item("Protein Shake", price=5)
    slot_id = _book_individual(client, user, activity_id, coach_id, day)
    client.post(f"/api/bookings/individual/{slot_id}/items", json={"item_ids": [shake_id]}, headers=user["headers"])

    response = client.delete(f"/api/bookings/individual/{slot_id}", headers=user["headers"])
    assert response.json()["message"] == "Reservation cancelled successfully."
    stored = fetch(UserORM, user["id"])
    assert stored.punches == 2
    assert stored.shake_token == 1


def test_client_cannot_cancel_a_started_individual_session(client, make_user, make_coach, make_activity, make_slot):
    user = make_user()
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    slot_id = make_slot(activity_id, coach_id, past_date(), booked=True, user_id=user["id"])

    response = client.delete(f"/api/bookings/individual/{slot_id}", headers=user["headers"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel a session that has already started."
    slot = fetch(TimeSlotORM, slot_id)
    assert slot.booked and slot.user_id == user["id"]
    assert fetch(UserORM, user["id"]).wallet == 0


def test_client_cannot_leave_a_started_group_session(client, make_user, make_coach, make_activity, make_group_slot):
    coach_id = make_coach()
    activity_id = make_activity(name="Spin", credits=15, capacity=10, group=True)
    user = make_user()
    slot_id = make_group_slot(activity_id, coach_id, past_date(), user_ids=[user["id"]])

    response = client.delete(f"/api/bookings/group/{slot_id}", headers=user["headers"])
    assert response.status_code == 400
    slot = fetch(GroupTimeSlotORM, slot_id)
    assert slot.count == 1 and load_json(slot.user_ids_json) == [user["id"]]
    assert fetch(UserORM, user["id"]).wallet == 0


def test_cannot_cancel_someone_elses_reservation(client, make_user, make_coach, make_activity, make_slot):
    owner, other = make_user(wallet=100), make_user()
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    slot_id = _book_individual(client, owner, activity_id, coach_id, day)

    response = client.delete(f"/api/bookings/individual/{slot_id}", headers=other["headers"])
    assert response.status_code == 403
    assert response.json()["detail"] == "Unauthorized to cancel this reservation."
    assert fetch(TimeSlotORM, slot_id).booked


def test_admin_cancels_individual_booking(client, admin, make_user, make_coach, make_activity, make_slot):
    user = make_user(wallet=30)
    coach_id, activity_id = make_coach(), make_activity(credits=30)
    day = future_date()
    make_slot(activity_id, coach_id, day)
    slot_id = _book_individual(client, user, activity_id, coach_id, day)

    response = client.delete(f"/api/admin/bookings/individual/{slot_id}", headers=admin["headers"])
    assert response.status_code == 200
    assert fetch(UserORM, user["id"]).wallet == 30


def test_user_leaves_group_class(client, make_user, make_coach, make_activity, make_group_slot):
    coach_id = make_coach()
    activity_id = make_activity(name="HIIT", credits=15, capacity=2, group=True)
    staying, leaving = make_user(), make_user(public_token=0)
    slot_id = make_group_slot(activity_id, coach_id, user_ids=[staying["id"], leaving["id"]], token_users=[leaving["id"]])
    db = SessionLocal()
    db.query(GroupTimeSlotORM).filter(GroupTimeSlotORM.id == slot_id).update({"booked": True})
    db.commit()
    db.close()

    response = client.delete(f"/api/bookings/group/{slot_id}", headers=leaving["headers"])
    assert response.status_code == 200

    slot = fetch(GroupTimeSlotORM, slot_id)
    assert slot.count == 1 and not slot.booked
    assert load_json(slot.user_ids_json) == [staying["id"]]
    assert load_json(slot.booked_with_token_json) == []
    assert fetch(UserORM, leaving["id"]).public_token == 1


def test_semi_private_cancellation_returns_semi_private_token(client, make_user, make_coach, make_activity, make_group_slot):
    coach_id = make_coach()
    activity_id = make_activity(name="Duo", credits=40, capacity=3, semi_private=True)
    user = make_user()
    slot_id = make_group_slot(activity_id, coach_id, user_ids=[user["id"]], token_users=[user["id"]])

    client.delete(f"/api/bookings/group/{slot_id}", headers=user["headers"])
    stored = fetch(UserORM, user["id"])
    assert stored.semi_private_token == 1
    assert stored.public_token == 0


def test_admin_cancels_whole_group_session(client, admin, make_user, make_coach, make_activity, make_group_slot):
    coach_id = make_coach()
    activity_id = make_activity(name="Spin", credits=15, capacity=10, group=True)
    token_user, credit_user, free_user = make_user(), make_user(wallet=0), make_user(is_free=True)
    slot_id = make_group_slot(
        activity_id, coach_id,
        user_ids=[token_user["id"], credit_user["id"], free_user["id"]], token_users=[token_user["id"]]
    )

    response = client.delete(f"/api/admin/bookings/group/{slot_id}", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["refunded"] == 3

    assert fetch(UserORM, token_user["id"]).public_token == 1
    assert fetch(UserORM, credit_user["id"]).wallet == 15
    assert fetch(UserORM, free_user["id"]).wallet == 0
    slot = fetch(GroupTimeSlotORM, slot_id)
    assert slot.count == 0 and load_json(slot.user_ids_json) == [] and not slot.booked


def test_admin_removes_group_participant(client, admin, make_user, make_coach, make_activity, make_group_slot):
    coach_id = make_coach()
    activity_id = make_activity(name="Spin", credits=15, capacity=10, group=True)
    staying, removed = make_user(), make_user(wallet=0)
    slot_id = make_group_slot(activity_id, coach_id, past_date(), user_ids=[staying["id"], removed["id"]])

    response = client.delete(f"/api/admin/bookings/group/{slot_id}/participants/{removed['id']}", headers=admin["headers"])
    assert response.status_code == 200

    slot = fetch(GroupTimeSlotORM, slot_id)
    assert slot.count == 1
    assert load_json(slot.user_ids_json) == [staying["id"]]
    assert fetch(UserORM, removed["id"]).wallet == 15
    assert fetch(UserORM, staying["id"]).wallet == 0

    again = client.delete(f"/api/admin/bookings/group/{slot_id}/participants/{removed['id']}", headers=admin["headers"])
    assert again.status_code == 400
    assert again.json()["detail"] == "User is not enrolled in this class"
