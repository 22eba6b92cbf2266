"""
Cancellation Service - handles cancelling reservations and refunding
sessions, session add-ons and loyalty punches.
"""
from .base import (
    HTTPException, logging, datetime,
    get_db_session, UserORM, ActivityORM, TimeSlotORM, GroupTimeSlotORM, MarketItemORM,
    load_json, dump_json, record_transaction, display_name
)
from .loyalty import is_protein_item, apply_cancellation_punches
from .email_service import email_service

logger = logging.getLogger("studio_app")


def has_started(slot) -> bool:
    return f"{slot.date} {slot.start_time}" <= datetime.now().strftime("%Y-%m-%d %H:%M")


def group_token_currency(activity) -> str:
    return "semi_private_token" if activity and activity.is_semi_private else "public_token"


class CancellationService:
    """Service for cancelling individual and group reservations."""

    # --- REFUNDS ---

    def refund_participant(self, db, user: UserORM, activity, group: bool, with_token: bool, items: list) -> dict:
        """
        Refund one participant's session and add-ons inside the caller's transaction.

        `items` are dicts with at least a name; group add-ons also carry id and price.
        Returns the refund summary used for messages and e-mails.
        """
        lines = []
        session_kind = "group" if group else "individual"
        activity_name = activity.name if activity else "session"
        price = (activity.credits or 0) if activity else 0

        # Session
        if with_token:
            currency = group_token_currency(activity) if group else "private_token"
            setattr(user, currency, (getattr(user, currency) or 0) + 1)
            record_transaction(db, user.id, f"Refund for cancelled {session_kind} session: {activity_name}",
                               "session_refund", 1, currency)
            lines.append(f"+1 {currency.replace('_', ' ')}")
        elif user.is_free:
            record_transaction(db, user.id, f"Cancelled {session_kind} session: {activity_name} (free session)",
                               "session_refund", 0, "credits")
        else:
            user.wallet = (user.wallet or 0) + price
            record_transaction(db, user.id, f"Refund for cancelled {session_kind} session: {activity_name}",
                               "session_refund", price, "credits")
            lines.append(f"+{price:g} credits")

        # Add-ons: protein items come back as shake tokens, the rest as credits
        protein_count = 0
        credit_refund = 0.0
        refunded_names = []
        for item in items:
            market_item = None
            if item.get("id"):
                market_item = db.query(MarketItemORM).filter(MarketItemORM.id == item["id"]).first()
            if not market_item and item.get("name"):
                market_item = db.query(MarketItemORM).filter(MarketItemORM.name == item["name"]).first()
            if market_item:
                market_item.quantity = (market_item.quantity or 0) + 1

            name = item.get("name") or (market_item.name if market_item else "item")
            refunded_names.append(name)
            if is_protein_item(name):
                protein_count += 1
            else:
                item_price = item.get("price")
                if item_price is None:
                    item_price = market_item.price if market_item else 0
                credit_refund += item_price or 0

        if credit_refund:
            user.wallet = (user.wallet or 0) + credit_refund
            record_transaction(db, user.id, f"Refund for session items: {', '.join(refunded_names)}",
                               "market_refund", credit_refund, "credits")
            lines.append(f"+{credit_refund:g} credits for items")
        if protein_count:
            user.shake_token = (user.shake_token or 0) + protein_count
            record_transaction(db, user.id, f"Shake tokens returned for: {', '.join(refunded_names)}",
                               "market_refund", protein_count, "shake_token")
            lines.append(f"+{protein_count} shake token(s)")

        # Loyalty card
        new_punches, deducted, penalty = apply_cancellation_punches(user.punches, protein_count)
        if deducted:
            user.punches = new_punches
            record_transaction(db, user.id, "Punch card adjustment for cancelled items",
                               "punch_card_adjustment", -deducted, "punches")
        if penalty:
            user.shake_token = max(0, (user.shake_token or 0) - penalty)
            record_transaction(db, user.id, "Punch card penalty: completed card reversed",
                               "punch_card_penalty", -penalty, "shake_token")
            lines.append(f"-{penalty} shake tokens (punch card penalty)")

        return {"lines": lines, "tokens_returned": protein_count, "penalty": penalty}

    def _message(self, refund: dict) -> str:
        if refund["penalty"]:
            return (f"Reservation cancelled successfully. {refund['tokens_returned']} shake token(s) returned "
                    f"and {refund['penalty']} shake tokens deducted because a completed punch card was reversed.")
        return "Reservation cancelled successfully."

    # --- IN-TRANSACTION RELEASES (shared with rescheduling) ---

    def release_individual(self, db, slot: TimeSlotORM, user: UserORM) -> dict:
        activity = db.query(ActivityORM).filter(ActivityORM.id == slot.activity_id).first()
        items = [{"name": name} for name in load_json(slot.additions_json)]
        refund = self.refund_participant(db, user, activity, False, bool(slot.booked_with_token), items)

        slot.user_id = None
        slot.booked = False
        slot.additions_json = dump_json([])
        slot.booked_with_token = False
        return {"refund": refund, "activity": activity}

    def release_group_participant(self, db, slot: GroupTimeSlotORM, user: UserORM) -> dict:
        activity = db.query(ActivityORM).filter(ActivityORM.id == slot.activity_id).first()
        user_ids = load_json(slot.user_ids_json)
        token_users = load_json(slot.booked_with_token_json)
        additions = load_json(slot.additions_json)

        items = []
        for entry in additions:
            if entry.get("user_id") == user.id:
                items.extend(entry.get("items", []))
        refund = self.refund_participant(db, user, activity, True, user.id in token_users, items)

        user_ids = [uid for uid in user_ids if uid != user.id]
        slot.user_ids_json = dump_json(user_ids)
        slot.booked_with_token_json = dump_json([uid for uid in token_users if uid != user.id])
        slot.additions_json = dump_json([a for a in additions if a.get("user_id") != user.id])
        slot.count = len(user_ids)
        capacity = activity.capacity if activity else 0
        slot.booked = bool(capacity) and slot.count >= capacity
        return {"refund": refund, "activity": activity}

    # --- OPERATIONS ---

    def cancel_individual(self, slot_id: str, user_id: str, by_admin: bool = False) -> dict:
        db = get_db_session()
        try:
            slot = db.query(TimeSlotORM).filter(TimeSlotORM.id == slot_id).first()
            if not slot:
                raise HTTPException(status_code=404, detail="Time slot not found")

            if by_admin:
                if not slot.booked or not slot.user_id:
                    raise HTTPException(status_code=400, detail="Time slot is not booked")
                user_id = slot.user_id
            elif slot.user_id != user_id or not slot.booked:
                raise HTTPException(status_code=403, detail="Unauthorized to cancel this reservation.")
            elif has_started(slot):
                raise HTTPException(status_code=400, detail="Cannot cancel a session that has already started.")

            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")

            result = self.release_individual(db, slot, user)
            db.commit()

            logger.info(f"Individual reservation cancelled: slot {slot_id}, user {user_id}, admin={by_admin}")
            self._notify(user, result["activity"], slot, result["refund"])
            return {"status": "success", "message": self._message(result["refund"]), "refund": result["refund"]["lines"]}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error cancelling reservation: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to cancel reservation: {str(e)}")
        finally:
            db.close()

    def cancel_group(self, slot_id: str, user_id: str, by_admin: bool = False) -> dict:
        """Remove one participant from a group slot."""
        db = get_db_session()
        try:
            slot = db.query(GroupTimeSlotORM).filter(GroupTimeSlotORM.id == slot_id).first()
            if not slot:
                raise HTTPException(status_code=404, detail="Time slot not found")

            if user_id not in load_json(slot.user_ids_json):
                if by_admin:
                    raise HTTPException(status_code=400, detail="User is not enrolled in this class")
                raise HTTPException(status_code=403, detail="Unauthorized to cancel this reservation.")
            if not by_admin and has_started(slot):
                raise HTTPException(status_code=400, detail="Cannot cancel a session that has already started.")

            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")

            result = self.release_group_participant(db, slot, user)
            db.commit()

            logger.info(f"Group reservation cancelled: slot {slot_id}, user {user_id}, admin={by_admin}")
            self._notify(user, result["activity"], slot, result["refund"])
            return {"status": "success", "message": self._message(result["refund"]), "refund": result["refund"]["lines"]}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error cancelling group reservation: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to cancel reservation: {str(e)}")
        finally:
            db.close()

    def cancel_group_session(self, slot_id: str) -> dict:
        """Admin: cancel a whole group class and refund every participant."""
        db = get_db_session()
        try:
            slot = db.query(GroupTimeSlotORM).filter(GroupTimeSlotORM.id == slot_id).first()
            if not slot:
                raise HTTPException(status_code=404, detail="Time slot not found")

            activity = db.query(ActivityORM).filter(ActivityORM.id == slot.activity_id).first()
            token_users = load_json(slot.booked_with_token_json)
            additions = load_json(slot.additions_json)
            refunded = []
            for uid in load_json(slot.user_ids_json):
                user = db.query(UserORM).filter(UserORM.id == uid).first()
                if not user:
                    logger.warning(f"Participant {uid} of slot {slot_id} no longer exists, skipping refund")
                    continue
                items = []
                for entry in additions:
                    if entry.get("user_id") == uid:
                        items.extend(entry.get("items", []))
                refund = self.refund_participant(db, user, activity, True, uid in token_users, items)
                refunded.append((user, refund))

            slot.user_ids_json = dump_json([])
            slot.count = 0
            slot.booked = False
            slot.additions_json = dump_json([])
            slot.booked_with_token_json = dump_json([])
            db.commit()

            logger.info(f"Group session cancelled by admin: slot {slot_id}, {len(refunded)} participant(s) refunded")
            for user, refund in refunded:
                self._notify(user, activity, slot, refund, notify_admin=False)
            return {"status": "success", "message": "Group session cancelled successfully.", "refunded": len(refunded)}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error cancelling group session: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to cancel group session: {str(e)}")
        finally:
            db.close()

    def _notify(self, user, activity, slot, refund: dict, notify_admin: bool = True):
        activity_name = activity.name if activity else "Session"
        email_service.send_cancellation_receipt(
            user.email, display_name(user), activity_name,
            slot.date, slot.start_time, slot.end_time, refund["lines"]
        )
        if notify_admin:
            email_service.send_admin_cancellation_notice(
                display_name(user), activity_name, slot.date, slot.start_time, slot.end_time
            )


# Singleton instance
cancellation_service = CancellationService()


def get_cancellation_service() -> CancellationService:
    """Dependency injection helper."""
    return cancellation_service
