"""
Dashboard Service - admin overview counters and today's schedule.
"""
from .base import (
    logging,
    get_db_session, UserORM, ActivityORM, CoachORM, TimeSlotORM, GroupTimeSlotORM,
    load_json, today_str, now_hhmm, display_name
)

logger = logging.getLogger("studio_app")


class DashboardService:
    """Service for the admin dashboard."""

    def get_totals(self) -> dict:
        db = get_db_session()
        try:
            today = today_str()
            sessions_today = db.query(TimeSlotORM).filter(
                TimeSlotORM.date == today, TimeSlotORM.booked == True  # noqa: E712
            ).count() + db.query(GroupTimeSlotORM).filter(
                GroupTimeSlotORM.date == today, GroupTimeSlotORM.count > 0
            ).count()
            return {
                "total_activities": db.query(ActivityORM).count(),
                "total_coaches": db.query(CoachORM).count(),
                "todays_sessions": sessions_today,
            }
        finally:
            db.close()

    def get_booked_slots_today(self) -> list:
        """Booked sessions today that have not finished yet, ordered by start time."""
        db = get_db_session()
        try:
            today = today_str()
            now = now_hhmm()
            individual = db.query(TimeSlotORM).filter(
                TimeSlotORM.date == today, TimeSlotORM.booked == True, TimeSlotORM.end_time > now  # noqa: E712
            ).all()
            group = db.query(GroupTimeSlotORM).filter(
                GroupTimeSlotORM.date == today, GroupTimeSlotORM.count > 0, GroupTimeSlotORM.end_time > now
            ).all()

            coaches = {c.id: c.name for c in db.query(CoachORM).all()}
            activities = {a.id: a.name for a in db.query(ActivityORM).all()}
            user_ids = {s.user_id for s in individual if s.user_id}
            for s in group:
                user_ids.update(load_json(s.user_ids_json))
            users = {u.id: u for u in db.query(UserORM).filter(UserORM.id.in_(user_ids)).all()} if user_ids else {}

            sessions = []
            for slot, participants, kind in (
                [(s, [s.user_id], "private") for s in individual] +
                [(s, load_json(s.user_ids_json), "group") for s in group]
            ):
                sessions.append({
                    "slot_id": slot.id,
                    "session_type": kind,
                    "coach_name": coaches.get(slot.coach_id, "N/A"),
                    "activity_name": activities.get(slot.activity_id, "N/A"),
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "date": slot.date,
                    "users": [display_name(users.get(uid)) for uid in participants],
                })
            sessions.sort(key=lambda s: s["start_time"])
            return sessions
        finally:
            db.close()


# Singleton instance
dashboard_service = DashboardService()


def get_dashboard_service() -> DashboardService:
    """Dependency injection helper."""
    return dashboard_service
