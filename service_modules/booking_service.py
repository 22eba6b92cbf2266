"""
Booking Service - handles booking individual and group sessions, rescheduling
and paying for session add-ons.
"""
from .base import (
    HTTPException, uuid, logging,
    get_db_session, UserORM, ActivityORM, CoachORM, TimeSlotORM, GroupTimeSlotORM, MarketItemORM,
    load_json, dump_json, record_transaction, display_name
)
from .loyalty import is_protein_item, apply_purchase_punches
from .cancellation_service import cancellation_service, has_started
from .email_service import email_service

logger = logging.getLogger("studio_app")


def _is_group_activity(activity: ActivityORM) -> bool:
    return bool(activity.is_group or activity.is_semi_private)


class BookingService:
    """Service for booking sessions and paying for session items."""

    # --- BOOKING ---

    def _load_booking_parties(self, db, user_id: str, request: dict):
        user = db.query(UserORM).filter(UserORM.id == user_id).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        activity = db.query(ActivityORM).filter(ActivityORM.id == request["activity_id"]).first()
        if not activity:
            raise HTTPException(status_code=404, detail="Activity not found")
        return user, activity

    def _book_individual(self, db, user: UserORM, activity: ActivityORM, request: dict) -> dict:
        slot = db.query(TimeSlotORM).filter(
            TimeSlotORM.activity_id == activity.id,
            TimeSlotORM.coach_id == request["coach_id"],
            TimeSlotORM.date == request["date"],
            TimeSlotORM.start_time == request["start_time"],
            TimeSlotORM.end_time == request["end_time"]
        ).first()
        if not slot:
            raise HTTPException(status_code=404, detail="Time slot not found")
        if slot.booked:
            raise HTTPException(status_code=400, detail="Time slot is already booked.")

        price = activity.credits or 0
        description = f"Individual session: {activity.name} on {slot.date} {slot.start_time}"

        if (user.private_token or 0) > 0:
            method = "token"
            user.private_token -= 1
            record_transaction(db, user.id, description, "individual_session", -1, "private_token")
            activity_price = "1 token"
        elif user.is_free or (user.wallet or 0) >= price:
            method = "credits"
            charged = 0 if user.is_free else price
            user.wallet = (user.wallet or 0) - charged
            record_transaction(db, user.id, description, "individual_session", -charged, "credits")
            activity_price = charged
        else:
            raise HTTPException(status_code=400, detail="Not enough credits or tokens")

        slot.user_id = user.id
        slot.booked = True
        slot.booked_with_token = method == "token"
        slot.additions_json = dump_json([])

        return {
            "message": f"Session booked successfully using {method}.",
            "slot_id": slot.id,
            "activity_price": activity_price,
        }

    def _book_group(self, db, user: UserORM, activity: ActivityORM, request: dict) -> dict:
        slot = db.query(GroupTimeSlotORM).filter(
            GroupTimeSlotORM.activity_id == activity.id,
            GroupTimeSlotORM.coach_id == request["coach_id"],
            GroupTimeSlotORM.date == request["date"],
            GroupTimeSlotORM.start_time == request["start_time"],
            GroupTimeSlotORM.end_time == request["end_time"]
        ).first()

        if slot:
            if slot.booked:
                raise HTTPException(status_code=400, detail="Time slot is already fully booked.")
            if user.id in load_json(slot.user_ids_json):
                raise HTTPException(status_code=400, detail="You are already enrolled in this class.")

        price = activity.credits or 0
        description = f"Group session: {activity.name} on {request['date']} {request['start_time']}"
        token_currency = None

        if activity.is_semi_private and (user.semi_private_token or 0) > 0:
            method, token_currency = "semi-private token", "semi_private_token"
        elif not activity.is_semi_private and (user.public_token or 0) > 0:
            method, token_currency = "public token", "public_token"
        elif user.is_free or (user.wallet or 0) >= price:
            method = "credits"
        else:
            raise HTTPException(status_code=400, detail="Not enough credits or tokens to book the session.")

        if token_currency:
            setattr(user, token_currency, getattr(user, token_currency) - 1)
            record_transaction(db, user.id, description, "group_session", -1, token_currency)
            activity_price = "1 token"
        else:
            charged = 0 if user.is_free else price
            user.wallet = (user.wallet or 0) - charged
            record_transaction(db, user.id, description, "group_session", -charged, "credits")
            activity_price = charged

        if slot:
            user_ids = load_json(slot.user_ids_json) + [user.id]
            token_users = load_json(slot.booked_with_token_json)
            if token_currency:
                token_users.append(user.id)
            slot.user_ids_json = dump_json(user_ids)
            slot.booked_with_token_json = dump_json(token_users)
            slot.count = len(user_ids)
            slot.booked = slot.count >= (activity.capacity or 1)
        else:
            slot = GroupTimeSlotORM(
                id=str(uuid.uuid4()),
                activity_id=activity.id,
                coach_id=request["coach_id"],
                date=request["date"],
                start_time=request["start_time"],
                end_time=request["end_time"],
                user_ids_json=dump_json([user.id]),
                count=1,
                booked=(activity.capacity or 1) <= 1,
                booked_with_token_json=dump_json([user.id] if token_currency else []),
                additions_json=dump_json([])
            )
            db.add(slot)

        return {
            "message": f"Group session booked successfully using {method}.",
            "slot_id": slot.id,
            "activity_price": activity_price,
        }

    def _book(self, db, user: UserORM, activity: ActivityORM, request: dict) -> dict:
        if _is_group_activity(activity):
            return self._book_group(db, user, activity, request)
        return self._book_individual(db, user, activity, request)

    def book_session(self, user_id: str, request: dict) -> dict:
        """Book an individual or group slot depending on the activity."""
        db = get_db_session()
        try:
            user, activity = self._load_booking_parties(db, user_id, request)
            result = self._book(db, user, activity, request)
            db.commit()

            logger.info(f"Session booked: slot {result['slot_id']}, user {user_id}, activity {activity.id}")
            self._send_confirmation(db, user, activity, request, result["activity_price"])
            return {"status": "success", "message": result["message"], "slot_id": result["slot_id"]}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error booking session: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to book session: {str(e)}")
        finally:
            db.close()

    def reschedule(self, user_id: str, old_slot_id: str, request: dict) -> dict:
        """Book the new slot, then release the old reservation, in one transaction."""
        db = get_db_session()
        try:
            user, activity = self._load_booking_parties(db, user_id, request)

            old_slot = db.query(TimeSlotORM).filter(TimeSlotORM.id == old_slot_id).first()
            old_group = False
            if old_slot:
                if old_slot.user_id != user_id or not old_slot.booked:
                    raise HTTPException(status_code=403, detail="Unauthorized to cancel this reservation.")
            else:
                old_slot = db.query(GroupTimeSlotORM).filter(GroupTimeSlotORM.id == old_slot_id).first()
                if not old_slot:
                    raise HTTPException(status_code=404, detail="Time slot not found")
                if user_id not in load_json(old_slot.user_ids_json):
                    raise HTTPException(status_code=403, detail="Unauthorized to cancel this reservation.")
                old_group = True
            if has_started(old_slot):
                raise HTTPException(status_code=400, detail="Cannot cancel a session that has already started.")

            result = self._book(db, user, activity, request)
            db.flush()
            if old_group:
                cancellation_service.release_group_participant(db, old_slot, user)
            else:
                cancellation_service.release_individual(db, old_slot, user)
            db.commit()

            logger.info(f"Reservation rescheduled: {old_slot_id} -> {result['slot_id']} for user {user_id}")
            self._send_confirmation(db, user, activity, request, result["activity_price"])
            return {"status": "success", "message": "Session rescheduled successfully.", "slot_id": result["slot_id"]}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error rescheduling session: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to reschedule session: {str(e)}")
        finally:
            db.close()

    def _send_confirmation(self, db, user, activity, request: dict, activity_price):
        coach = db.query(CoachORM).filter(CoachORM.id == request["coach_id"]).first()
        email_service.send_booking_confirmation(
            user.email, display_name(user), activity.name,
            coach.name if coach else "N/A",
            request["date"], request["start_time"], request["end_time"], activity_price
        )

    # --- SESSION ITEMS ---

    def pay_for_items(self, user_id: str, slot_id: str, item_ids: list, group: bool) -> dict:
        """Buy market items to be served at a booked session."""
        if not item_ids:
            raise HTTPException(status_code=400, detail="No items selected")

        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")

            model = GroupTimeSlotORM if group else TimeSlotORM
            slot = db.query(model).filter(model.id == slot_id).first()
            if not slot:
                raise HTTPException(status_code=404, detail="Time slot not found")
            holds = user_id in load_json(slot.user_ids_json) if group else slot.user_id == user_id
            if not holds:
                raise HTTPException(status_code=403, detail="You do not hold a reservation for this session")

            shake_tokens = user.shake_token or 0
            total_price = 0.0
            protein_qty = 0
            purchased = []
            token_names = []
            paid_names = []
            for item_id in item_ids:
                item = db.query(MarketItemORM).filter(MarketItemORM.id == item_id).first()
                if not item:
                    raise HTTPException(status_code=404, detail="Item not found")
                if (item.quantity or 0) <= 0:
                    raise HTTPException(status_code=400, detail=f"{item.name} is out of stock")

                used_token = False
                if is_protein_item(item.name):
                    protein_qty += 1
                    if shake_tokens > 0:
                        shake_tokens -= 1
                        used_token = True
                if used_token:
                    token_names.append(item.name)
                else:
                    total_price += item.price or 0
                    paid_names.append(item.name)

                item.quantity = max(0, item.quantity - 1)
                purchased.append({"id": item.id, "name": item.name, "price": item.price or 0, "used_token": used_token})

            if (user.wallet or 0) < total_price:
                raise HTTPException(status_code=400, detail="Not enough credits to pay for the items.")

            new_punches, awarded = apply_purchase_punches(user.punches, protein_qty)
            user.wallet = (user.wallet or 0) - total_price
            user.shake_token = shake_tokens + awarded
            user.punches = new_punches

            if group:
                additions = load_json(slot.additions_json)
                additions.append({"user_id": user_id, "items": purchased})
            else:
                additions = load_json(slot.additions_json) + [p["name"] for p in purchased]
            slot.additions_json = dump_json(additions)

            session_kind = "group" if group else "individual"
            if total_price:
                record_transaction(db, user_id, f"Purchased items for {session_kind} session: {', '.join(paid_names)}",
                                   "item_purchase", -total_price, "credits")
            if token_names:
                record_transaction(db, user_id, f"Used shake tokens for: {', '.join(token_names)}",
                                   "shake_token_use", -len(token_names), "shake_token")
            if awarded:
                record_transaction(db, user_id, "Earned free shake tokens from punch card completion",
                                   "shake_token_reward", awarded, "shake_token")
            db.commit()

            logger.info(f"Items paid for slot {slot_id} by user {user_id}: {len(purchased)} item(s), {total_price:g} credits")
            return {
                "status": "success",
                "message": "Items added to your session.",
                "credits_spent": total_price,
                "shake_tokens_used": len(token_names),
                "shake_tokens_awarded": awarded,
                "punches": new_punches,
            }
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error paying for session items: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to pay for items: {str(e)}")
        finally:
            db.close()


# Singleton instance
booking_service = BookingService()


def get_booking_service() -> BookingService:
    """Dependency injection helper."""
    return booking_service
