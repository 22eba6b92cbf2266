"""
Session History Service - completed sessions across individual and group slots.
"""
import math

from .base import (
    HTTPException, logging,
    get_db_session, UserORM, ActivityORM, CoachORM, TimeSlotORM, GroupTimeSlotORM,
    load_json, today_str, now_hhmm, display_name
)

logger = logging.getLogger("studio_app")

SORT_FIELDS = {"date", "activity", "coach"}


class SessionHistoryService:
    """Service for listing sessions that already took place."""

    def _past_filter(self, model, today: str, now: str):
        return (model.date < today) | ((model.date == today) & (model.end_time <= now))

    def get_completed_sessions(self, user_id: str = None, page: int = 1, limit: int = 10,
                               sort_by: str = "date", sort_order: str = "desc", session_filter: str = "all",
                               start_date: str = None, end_date: str = None, activity_id: str = None) -> dict:
        if page < 1 or limit < 1:
            raise HTTPException(status_code=400, detail="page and limit must be positive")
        if session_filter not in ("all", "private", "group"):
            raise HTTPException(status_code=400, detail="filter must be one of all, private, group")
        if sort_by not in SORT_FIELDS:
            raise HTTPException(status_code=400, detail=f"sort_by must be one of {', '.join(sorted(SORT_FIELDS))}")

        db = get_db_session()
        try:
            today = today_str()
            now = now_hhmm()

            def scoped(model):
                query = db.query(model).filter(self._past_filter(model, today, now))
                if start_date:
                    query = query.filter(model.date >= start_date)
                if end_date:
                    query = query.filter(model.date <= end_date)
                if activity_id:
                    query = query.filter(model.activity_id == activity_id)
                return query

            private_slots = []
            if session_filter in ("all", "private"):
                query = scoped(TimeSlotORM).filter(TimeSlotORM.booked == True)  # noqa: E712
                if user_id:
                    query = query.filter(TimeSlotORM.user_id == user_id)
                private_slots = query.all()

            group_slots = []
            if session_filter in ("all", "group"):
                group_slots = scoped(GroupTimeSlotORM).filter(GroupTimeSlotORM.count > 0).all()
                if user_id:
                    group_slots = [s for s in group_slots if user_id in load_json(s.user_ids_json)]

            activities = {a.id: a for a in db.query(ActivityORM).all()}
            coaches = {c.id: c.name for c in db.query(CoachORM).all()}
            user_ids = {s.user_id for s in private_slots if s.user_id}
            for s in group_slots:
                user_ids.update(load_json(s.user_ids_json))
            users = {u.id: u for u in db.query(UserORM).filter(UserORM.id.in_(user_ids)).all()} if user_ids else {}

            sessions = []
            for slot in private_slots:
                activity = activities.get(slot.activity_id)
                sessions.append({
                    "id": slot.id,
                    "session_type": "private",
                    "date": slot.date,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "activity_name": activity.name if activity else "N/A",
                    "coach_name": coaches.get(slot.coach_id, "N/A"),
                    "users": [display_name(users.get(slot.user_id))],
                    "booked_with_token": bool(slot.booked_with_token),
                    "additions": load_json(slot.additions_json),
                })
            for slot in group_slots:
                activity = activities.get(slot.activity_id)
                participants = load_json(slot.user_ids_json)
                sessions.append({
                    "id": slot.id,
                    "session_type": "group",
                    "date": slot.date,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "activity_name": activity.name if activity else "N/A",
                    "coach_name": coaches.get(slot.coach_id, "N/A"),
                    "users": [display_name(users.get(uid)) for uid in participants],
                    "count": slot.count or 0,
                    "capacity": activity.capacity if activity else None,
                })

            if sort_by == "activity":
                key = lambda s: (s["activity_name"].lower(), s["date"], s["start_time"])  # noqa: E731
            elif sort_by == "coach":
                key = lambda s: (s["coach_name"].lower(), s["date"], s["start_time"])  # noqa: E731
            else:
                key = lambda s: (s["date"], s["start_time"])  # noqa: E731
            sessions.sort(key=key, reverse=sort_order == "desc")

            total = len(sessions)
            offset = (page - 1) * limit
            return {
                "sessions": sessions[offset:offset + limit],
                "total_count": total,
                "current_page": page,
                "total_pages": math.ceil(total / limit),
                "summary": {
                    "total_sessions": total,
                    "total_private_sessions": len(private_slots),
                    "total_group_sessions": len(group_slots),
                },
            }
        finally:
            db.close()


# Singleton instance
session_history_service = SessionHistoryService()


def get_session_history_service() -> SessionHistoryService:
    """Dependency injection helper."""
    return session_history_service
