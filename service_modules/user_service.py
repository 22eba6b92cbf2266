"""
User Service - handles client profiles, health tracking and admin user management.
"""
from sqlalchemy import or_

from .base import (
    HTTPException, logging, datetime, timedelta,
    get_db_session, UserORM, TimeSlotORM, GroupTimeSlotORM, TransactionORM, MarketTransactionORM,
    load_json, dump_json, display_name
)
from .wallet_service import parse_datetime

logger = logging.getLogger("studio_app")

PROFILE_FIELDS = ["first_name", "last_name", "email", "phone", "date_of_birth", "gender", "activity_level", "height"]
METRIC_COLUMNS = {"weight": "weight_json", "waist": "waist_json"}


def user_to_dict(user: UserORM) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": display_name(user),
        "email": user.email,
        "role": user.role,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "date_of_birth": user.date_of_birth,
        "gender": user.gender,
        "activity_level": user.activity_level,
        "height": user.height,
        "weight": load_json(user.weight_json),
        "waist_circumference": load_json(user.waist_json),
        "health_goals": load_json(user.health_goals_json),
        "wallet": user.wallet or 0,
        "is_free": bool(user.is_free),
        "private_token": user.private_token or 0,
        "public_token": user.public_token or 0,
        "semi_private_token": user.semi_private_token or 0,
        "workout_day_token": user.workout_day_token or 0,
        "shake_token": user.shake_token or 0,
        "punches": user.punches or 0,
        "essentials_till": user.essentials_till,
        "refill_date": user.refill_date,
    }


class UserService:
    """Service for profiles and admin user management."""

    def _get_user(self, db, user_id: str) -> UserORM:
        user = db.query(UserORM).filter(UserORM.id == user_id).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    # --- PROFILE ---

    def get_profile(self, user_id: str) -> dict:
        db = get_db_session()
        try:
            return user_to_dict(self._get_user(db, user_id))
        finally:
            db.close()

    def update_profile(self, user_id: str, updates: dict) -> dict:
        if updates.get("height") is not None and updates["height"] <= 0:
            raise HTTPException(status_code=400, detail="Height must be positive")

        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            email = updates.get("email")
            if email and email != user.email:
                if db.query(UserORM).filter(UserORM.email == email, UserORM.id != user_id).first():
                    raise HTTPException(status_code=400, detail="Email already in use")

            for field in PROFILE_FIELDS:
                if updates.get(field) is not None:
                    setattr(user, field, updates[field])
            db.commit()
            db.refresh(user)
            logger.info(f"Profile updated for {user_id}")
            return user_to_dict(user)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating profile: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update profile: {str(e)}")
        finally:
            db.close()

    def add_metric(self, user_id: str, kind: str, value: float) -> dict:
        """Append a weight or waist measurement dated today."""
        column = METRIC_COLUMNS.get(kind)
        if not column:
            raise HTTPException(status_code=400, detail="Metric must be 'weight' or 'waist'")
        if value < 0:
            raise HTTPException(status_code=400, detail="Value cannot be negative")

        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            history = load_json(getattr(user, column))
            history.append({"date": datetime.utcnow().isoformat(), "value": value})
            setattr(user, column, dump_json(history))
            db.commit()
            logger.info(f"{kind} entry added for {user_id}")
            return {"status": "success", kind: history}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error adding {kind} entry: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to add {kind} entry: {str(e)}")
        finally:
            db.close()

    def add_goal(self, user_id: str, description: str) -> dict:
        if not description or not description.strip():
            raise HTTPException(status_code=400, detail="Goal description is required")
        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            goals = load_json(user.health_goals_json)
            goals.append({"description": description.strip(), "created_at": datetime.utcnow().isoformat(), "completed": False})
            user.health_goals_json = dump_json(goals)
            db.commit()
            return {"status": "success", "health_goals": goals}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error adding health goal: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to add health goal: {str(e)}")
        finally:
            db.close()

    def toggle_goal(self, user_id: str, index: int) -> dict:
        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            goals = load_json(user.health_goals_json)
            if index < 0 or index >= len(goals):
                raise HTTPException(status_code=404, detail="Goal not found")
            goals[index]["completed"] = not goals[index].get("completed", False)
            user.health_goals_json = dump_json(goals)
            db.commit()
            return {"status": "success", "health_goals": goals}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating health goal: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update health goal: {str(e)}")
        finally:
            db.close()

    # --- ADMIN ---

    def search_users(self, search: str = None) -> list:
        db = get_db_session()
        try:
            query = db.query(UserORM)
            if search:
                pattern = f"%{search}%"
                query = query.filter(or_(
                    UserORM.username.ilike(pattern),
                    UserORM.first_name.ilike(pattern),
                    UserORM.last_name.ilike(pattern)
                ))
            return [user_to_dict(u) for u in query.order_by(UserORM.username).all()]
        finally:
            db.close()

    def get_user_totals(self) -> dict:
        """Total users and active users (refilled within two months, or free)."""
        db = get_db_session()
        try:
            users = db.query(UserORM).all()
            cutoff = datetime.utcnow() - timedelta(days=60)
            active = 0
            for user in users:
                refill = parse_datetime(user.refill_date)
                if user.is_free or (refill and refill >= cutoff):
                    active += 1
            return {"total_users": len(users), "active_users": active}
        finally:
            db.close()

    def get_low_balance_users(self) -> list:
        """Paying clients running out of credits or tokens, most urgent first."""
        db = get_db_session()
        try:
            candidates = db.query(UserORM).filter(
                UserORM.is_free == False,  # noqa: E712
                UserORM.phone.isnot(None),
                UserORM.phone != ""
            ).all()

            low = []
            for user in candidates:
                wallet = user.wallet or 0
                private = user.private_token or 0
                public = user.public_token or 0
                if wallet == 0 and private == 0 and public == 0:
                    continue
                if 0 < wallet < 10 or 0 < private < 2 or 0 < public < 2:
                    low.append(user)

            def sort_key(user):
                wallet = user.wallet or 0
                private = user.private_token or 0
                public = user.public_token or 0
                both_low = wallet < 10 and (private < 2 or public < 2)
                return (0 if both_low else 1, wallet, private + public)

            low.sort(key=sort_key)
            return [
                {"id": u.id, "name": display_name(u), "phone": u.phone, "wallet": u.wallet or 0,
                 "private_token": u.private_token or 0, "public_token": u.public_token or 0}
                for u in low
            ]
        finally:
            db.close()

    def set_role(self, user_id: str, role: str) -> dict:
        if role not in ("user", "admin"):
            raise HTTPException(status_code=400, detail="Role must be 'user' or 'admin'")
        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            user.role = role
            db.commit()
            logger.info(f"Role for {user_id} set to {role}")
            return {"status": "success", "role": role}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error setting role: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to set role: {str(e)}")
        finally:
            db.close()

    def delete_user(self, user_id: str) -> dict:
        db = get_db_session()
        try:
            user = self._get_user(db, user_id)
            upcoming = db.query(TimeSlotORM).filter(
                TimeSlotORM.user_id == user_id, TimeSlotORM.date >= datetime.now().date().isoformat()
            ).count()
            upcoming += sum(
                1 for s in db.query(GroupTimeSlotORM).filter(
                    GroupTimeSlotORM.date >= datetime.now().date().isoformat(), GroupTimeSlotORM.count > 0
                ).all()
                if user_id in load_json(s.user_ids_json)
            )
            if upcoming:
                raise HTTPException(status_code=400, detail="Cancel the user's upcoming reservations first")

            # Past sessions stay in the history without an owner
            db.query(TimeSlotORM).filter(TimeSlotORM.user_id == user_id).update({"user_id": None})
            db.query(TransactionORM).filter(TransactionORM.user_id == user_id).delete()
            db.query(MarketTransactionORM).filter(MarketTransactionORM.user_id == user_id).delete()
            db.delete(user)
            db.commit()
            logger.info(f"User deleted: {user_id}")
            return {"status": "success", "message": "User deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting user: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to delete user: {str(e)}")
        finally:
            db.close()


# Singleton instance
user_service = UserService()


def get_user_service() -> UserService:
    """Dependency injection helper."""
    return user_service
