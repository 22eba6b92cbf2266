"""
Slot Service - handles individual and group time slots.
"""
from typing import Optional, List

from .base import (
    HTTPException, uuid, logging, date, timedelta,
    get_db_session, ActivityORM, CoachORM, TimeSlotORM, GroupTimeSlotORM,
    load_json, dump_json, today_str
)

logger = logging.getLogger("studio_app")


def slot_to_dict(slot: TimeSlotORM, activity: Optional[ActivityORM] = None, coach: Optional[CoachORM] = None) -> dict:
    return {
        "id": slot.id,
        "activity_id": slot.activity_id,
        "coach_id": slot.coach_id,
        "activity_name": activity.name if activity else None,
        "coach_name": coach.name if coach else None,
        "date": slot.date,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "user_id": slot.user_id,
        "booked": slot.booked,
        "booked_with_token": slot.booked_with_token,
        "additions": load_json(slot.additions_json),
    }


def group_slot_to_dict(slot: GroupTimeSlotORM, activity: Optional[ActivityORM] = None, coach: Optional[CoachORM] = None) -> dict:
    return {
        "id": slot.id,
        "activity_id": slot.activity_id,
        "coach_id": slot.coach_id,
        "activity_name": activity.name if activity else None,
        "coach_name": coach.name if coach else None,
        "capacity": activity.capacity if activity else None,
        "date": slot.date,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "user_ids": load_json(slot.user_ids_json),
        "count": slot.count or 0,
        "booked": slot.booked,
        "booked_with_token": load_json(slot.booked_with_token_json),
        "additions": load_json(slot.additions_json),
    }


def _lookup_maps(db, slots) -> tuple:
    activity_ids = {s.activity_id for s in slots}
    coach_ids = {s.coach_id for s in slots}
    activities = {a.id: a for a in db.query(ActivityORM).filter(ActivityORM.id.in_(activity_ids)).all()} if activity_ids else {}
    coaches = {c.id: c for c in db.query(CoachORM).filter(CoachORM.id.in_(coach_ids)).all()} if coach_ids else {}
    return activities, coaches


def serialize_slots(db, slots, group: bool) -> list:
    activities, coaches = _lookup_maps(db, slots)
    to_dict = group_slot_to_dict if group else slot_to_dict
    return [to_dict(s, activities.get(s.activity_id), coaches.get(s.coach_id)) for s in slots]


class SlotService:
    """Service for creating and listing time slots."""

    def _new_slot(self, db, activity: ActivityORM, coach_id: str, slot_date: str, start_time: str, end_time: str):
        model = GroupTimeSlotORM if (activity.is_group or activity.is_semi_private) else TimeSlotORM
        exists = db.query(model).filter(
            model.activity_id == activity.id,
            model.coach_id == coach_id,
            model.date == slot_date,
            model.start_time == start_time,
            model.end_time == end_time
        ).first()
        if exists:
            return None

        if model is GroupTimeSlotORM:
            slot = GroupTimeSlotORM(
                id=str(uuid.uuid4()), activity_id=activity.id, coach_id=coach_id,
                date=slot_date, start_time=start_time, end_time=end_time,
                user_ids_json=dump_json([]), count=0, booked=False,
                booked_with_token_json=dump_json([]), additions_json=dump_json([])
            )
        else:
            slot = TimeSlotORM(
                id=str(uuid.uuid4()), activity_id=activity.id, coach_id=coach_id,
                date=slot_date, start_time=start_time, end_time=end_time,
                booked=False, booked_with_token=False, additions_json=dump_json([])
            )
        db.add(slot)
        return slot

    def create_slots(self, activity_id: str, coach_id: str, dates: List[str], start_time: str, end_time: str) -> dict:
        """Create one slot per date. Slots that already exist are skipped."""
        if start_time >= end_time:
            raise HTTPException(status_code=400, detail="End time must be after start time")
        for d in dates:
            try:
                date.fromisoformat(d)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid date: {d}")

        db = get_db_session()
        try:
            activity = db.query(ActivityORM).filter(ActivityORM.id == activity_id).first()
            if not activity:
                raise HTTPException(status_code=404, detail="Activity not found")
            if not db.query(CoachORM).filter(CoachORM.id == coach_id).first():
                raise HTTPException(status_code=404, detail="Coach not found")

            created = []
            for d in dates:
                slot = self._new_slot(db, activity, coach_id, d, start_time, end_time)
                if slot:
                    created.append(slot.id)
            db.commit()

            logger.info(f"Created {len(created)} slot(s) for activity {activity_id}, coach {coach_id}")
            return {
                "status": "success",
                "created": len(created),
                "skipped": len(dates) - len(created),
                "slot_ids": created,
                "group": bool(activity.is_group or activity.is_semi_private)
            }
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating slots: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create time slots: {str(e)}")
        finally:
            db.close()

    def delete_slot(self, slot_id: str, group: bool) -> dict:
        model = GroupTimeSlotORM if group else TimeSlotORM
        db = get_db_session()
        try:
            slot = db.query(model).filter(model.id == slot_id).first()
            if not slot:
                raise HTTPException(status_code=404, detail="Time slot not found")
            occupied = (slot.count or 0) > 0 if group else slot.booked
            if occupied:
                raise HTTPException(status_code=400, detail="Cancel the booking before deleting this time slot")

            db.delete(slot)
            db.commit()
            logger.info(f"Time slot deleted: {slot_id}")
            return {"status": "success", "message": "Time slot deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting time slot: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to delete time slot: {str(e)}")
        finally:
            db.close()

    def get_available_slots(self, group: bool, activity_id: str = None, coach_id: str = None, slot_date: str = None) -> list:
        """Unbooked slots from a week ago onward, optionally filtered."""
        model = GroupTimeSlotORM if group else TimeSlotORM
        db = get_db_session()
        try:
            since = (date.today() - timedelta(days=7)).isoformat()
            query = db.query(model).filter(model.booked == False, model.date >= since)  # noqa: E712
            if activity_id:
                query = query.filter(model.activity_id == activity_id)
            if coach_id:
                query = query.filter(model.coach_id == coach_id)
            if slot_date:
                query = query.filter(model.date == slot_date)
            slots = query.order_by(model.date, model.start_time).all()
            return serialize_slots(db, slots, group)
        finally:
            db.close()

    def get_slots_from_today(self, group: bool) -> list:
        """All slots dated today or later, for the admin schedule."""
        model = GroupTimeSlotORM if group else TimeSlotORM
        db = get_db_session()
        try:
            slots = db.query(model).filter(model.date >= today_str()).order_by(model.date, model.start_time).all()
            return serialize_slots(db, slots, group)
        finally:
            db.close()

    def get_upcoming_sessions(self, group: bool, limit: int = 10) -> list:
        model = GroupTimeSlotORM if group else TimeSlotORM
        db = get_db_session()
        try:
            query = db.query(model).filter(model.date >= today_str())
            if group:
                query = query.filter(model.count > 0)
            else:
                query = query.filter(model.booked == True)  # noqa: E712
            slots = query.order_by(model.date, model.start_time).limit(limit).all()
            return serialize_slots(db, slots, group)
        finally:
            db.close()

    def get_user_reservations(self, user_id: str) -> dict:
        """Upcoming individual and group reservations held by a user."""
        db = get_db_session()
        try:
            today = today_str()
            individual = db.query(TimeSlotORM).filter(
                TimeSlotORM.user_id == user_id, TimeSlotORM.date >= today
            ).order_by(TimeSlotORM.date, TimeSlotORM.start_time).all()

            group = [
                s for s in db.query(GroupTimeSlotORM).filter(
                    GroupTimeSlotORM.date >= today, GroupTimeSlotORM.count > 0
                ).order_by(GroupTimeSlotORM.date, GroupTimeSlotORM.start_time).all()
                if user_id in load_json(s.user_ids_json)
            ]
            return {
                "individual": serialize_slots(db, individual, False),
                "group": serialize_slots(db, group, True),
            }
        finally:
            db.close()


# Singleton instance
slot_service = SlotService()


def get_slot_service() -> SlotService:
    """Dependency injection helper."""
    return slot_service
