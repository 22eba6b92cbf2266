"""
Activity Service - handles coaches and the activities they teach.
"""
from typing import Optional

from .base import (
    HTTPException, uuid, logging,
    get_db_session, CoachORM, ActivityORM, TimeSlotORM, GroupTimeSlotORM,
    today_str
)
from .upload_helper import save_file, delete_file

logger = logging.getLogger("studio_app")


def classify_activity(capacity: int, semi_private: bool) -> dict:
    """Derive the group/semi-private flags from capacity."""
    if capacity <= 1:
        return {"is_group": False, "is_semi_private": False}
    if semi_private and capacity <= 4:
        return {"is_group": False, "is_semi_private": True}
    return {"is_group": True, "is_semi_private": False}


def activity_to_dict(activity: ActivityORM) -> dict:
    return {
        "id": activity.id,
        "name": activity.name,
        "credits": activity.credits,
        "capacity": activity.capacity,
        "group": activity.is_group,
        "semi_private": activity.is_semi_private,
        "coach_id": activity.coach_id,
    }


def coach_to_dict(coach: CoachORM) -> dict:
    return {
        "id": coach.id,
        "name": coach.name,
        "email": coach.email,
        "profile_picture": coach.profile_picture,
    }


class ActivityService:
    """Service for managing coaches and activities."""

    # --- COACHES ---

    def list_coaches(self) -> list:
        db = get_db_session()
        try:
            coaches = db.query(CoachORM).order_by(CoachORM.name).all()
            return [coach_to_dict(c) for c in coaches]
        finally:
            db.close()

    def create_coach(self, name: str, email: str, picture: Optional[tuple] = None) -> dict:
        """Create a coach. `picture` is an optional (filename, bytes) upload."""
        if not name or not email:
            raise HTTPException(status_code=400, detail="Name and email are required")

        db = get_db_session()
        try:
            coach = CoachORM(id=str(uuid.uuid4()), name=name, email=email)
            if picture:
                coach.profile_picture = save_file(picture[1], "coaches", picture[0])
            db.add(coach)
            db.commit()
            db.refresh(coach)

            logger.info(f"Coach created: {coach.id} ({name})")
            return coach_to_dict(coach)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating coach: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create coach: {str(e)}")
        finally:
            db.close()

    def update_coach(self, coach_id: str, updates: dict, picture: Optional[tuple] = None) -> dict:
        db = get_db_session()
        try:
            coach = db.query(CoachORM).filter(CoachORM.id == coach_id).first()
            if not coach:
                raise HTTPException(status_code=404, detail="Coach not found")

            for field in ("name", "email"):
                value = updates.get(field)
                if value is not None:
                    if not value:
                        raise HTTPException(status_code=400, detail="Name and email are required")
                    setattr(coach, field, value)

            if picture:
                old_picture = coach.profile_picture
                coach.profile_picture = save_file(picture[1], "coaches", picture[0])
                delete_file(old_picture)

            db.commit()
            db.refresh(coach)
            logger.info(f"Coach updated: {coach_id}")
            return coach_to_dict(coach)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating coach: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update coach: {str(e)}")
        finally:
            db.close()

    def delete_coach(self, coach_id: str) -> dict:
        db = get_db_session()
        try:
            coach = db.query(CoachORM).filter(CoachORM.id == coach_id).first()
            if not coach:
                raise HTTPException(status_code=404, detail="Coach not found")

            picture = coach.profile_picture
            db.query(ActivityORM).filter(ActivityORM.coach_id == coach_id).update({"coach_id": None})
            db.delete(coach)
            db.commit()
            delete_file(picture)

            logger.info(f"Coach deleted: {coach_id}")
            return {"status": "success", "message": "Coach deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting coach: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to delete coach: {str(e)}")
        finally:
            db.close()

    def get_coaches_for_activity(self, activity_id: str) -> list:
        """Coaches with at least one open slot for this activity from today onward."""
        db = get_db_session()
        try:
            today = today_str()
            coach_ids = set()
            for model in (TimeSlotORM, GroupTimeSlotORM):
                rows = db.query(model.coach_id).filter(
                    model.activity_id == activity_id,
                    model.booked == False,  # noqa: E712
                    model.date >= today
                ).distinct().all()
                coach_ids.update(r[0] for r in rows)

            if not coach_ids:
                return []
            coaches = db.query(CoachORM).filter(CoachORM.id.in_(coach_ids)).order_by(CoachORM.name).all()
            return [coach_to_dict(c) for c in coaches]
        finally:
            db.close()

    # --- ACTIVITIES ---

    def list_activities(self, kind: str = "all") -> list:
        """kind: all | private | group"""
        db = get_db_session()
        try:
            query = db.query(ActivityORM)
            if kind == "private":
                query = query.filter(ActivityORM.is_group == False, ActivityORM.is_semi_private == False)  # noqa: E712
            elif kind == "group":
                query = query.filter((ActivityORM.is_group == True) | (ActivityORM.is_semi_private == True))  # noqa: E712
            return [activity_to_dict(a) for a in query.order_by(ActivityORM.name).all()]
        finally:
            db.close()

    def create_activity(self, data: dict) -> dict:
        if data.get("capacity", 1) < 1:
            raise HTTPException(status_code=400, detail="Capacity must be at least 1")
        if data.get("credits", 0) < 0:
            raise HTTPException(status_code=400, detail="Credits cannot be negative")

        db = get_db_session()
        try:
            if data.get("coach_id") and not db.query(CoachORM).filter(CoachORM.id == data["coach_id"]).first():
                raise HTTPException(status_code=404, detail="Coach not found")

            activity = ActivityORM(
                id=str(uuid.uuid4()),
                name=data["name"],
                credits=data["credits"],
                capacity=data.get("capacity", 1),
                coach_id=data.get("coach_id"),
                **classify_activity(data.get("capacity", 1), data.get("semi_private", False))
            )
            db.add(activity)
            db.commit()
            db.refresh(activity)

            logger.info(f"Activity created: {activity.id} ({activity.name}, capacity {activity.capacity})")
            return activity_to_dict(activity)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating activity: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create activity: {str(e)}")
        finally:
            db.close()

    def update_activity(self, activity_id: str, updates: dict) -> dict:
        db = get_db_session()
        try:
            activity = db.query(ActivityORM).filter(ActivityORM.id == activity_id).first()
            if not activity:
                raise HTTPException(status_code=404, detail="Activity not found")

            if updates.get("name") is not None:
                activity.name = updates["name"]
            if updates.get("credits") is not None:
                if updates["credits"] < 0:
                    raise HTTPException(status_code=400, detail="Credits cannot be negative")
                activity.credits = updates["credits"]
            if updates.get("coach_id") is not None:
                activity.coach_id = updates["coach_id"] or None

            if updates.get("capacity") is not None or updates.get("semi_private") is not None:
                capacity = updates["capacity"] if updates.get("capacity") is not None else activity.capacity
                if capacity < 1:
                    raise HTTPException(status_code=400, detail="Capacity must be at least 1")
                semi_private = updates["semi_private"] if updates.get("semi_private") is not None else activity.is_semi_private
                activity.capacity = capacity
                flags = classify_activity(capacity, semi_private)
                activity.is_group = flags["is_group"]
                activity.is_semi_private = flags["is_semi_private"]

            db.commit()
            db.refresh(activity)
            logger.info(f"Activity updated: {activity_id}")
            return activity_to_dict(activity)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating activity: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update activity: {str(e)}")
        finally:
            db.close()

    def delete_activity(self, activity_id: str) -> dict:
        db = get_db_session()
        try:
            activity = db.query(ActivityORM).filter(ActivityORM.id == activity_id).first()
            if not activity:
                raise HTTPException(status_code=404, detail="Activity not found")

            booked = db.query(TimeSlotORM).filter(
                TimeSlotORM.activity_id == activity_id, TimeSlotORM.booked == True,  # noqa: E712
                TimeSlotORM.date >= today_str()
            ).count() + db.query(GroupTimeSlotORM).filter(
                GroupTimeSlotORM.activity_id == activity_id, GroupTimeSlotORM.count > 0,
                GroupTimeSlotORM.date >= today_str()
            ).count()
            if booked:
                raise HTTPException(status_code=400, detail="Activity has upcoming bookings")

            db.query(TimeSlotORM).filter(TimeSlotORM.activity_id == activity_id, TimeSlotORM.booked == False).delete()  # noqa: E712
            db.query(GroupTimeSlotORM).filter(GroupTimeSlotORM.activity_id == activity_id, GroupTimeSlotORM.count == 0).delete()
            db.delete(activity)
            db.commit()

            logger.info(f"Activity deleted: {activity_id}")
            return {"status": "success", "message": "Activity deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting activity: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to delete activity: {str(e)}")
        finally:
            db.close()


# Singleton instance
activity_service = ActivityService()


def get_activity_service() -> ActivityService:
    """Dependency injection helper."""
    return activity_service
