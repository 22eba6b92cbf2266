"""
Wallet Service - handles credits, tokens, bundles and the essentials membership.
"""
import math

from dateutil.relativedelta import relativedelta

from .base import (
    HTTPException, logging, datetime,
    get_db_session, UserORM, TransactionORM,
    record_transaction, display_name
)
from .loyalty import loyalty_card_status
from .email_service import email_service

logger = logging.getLogger("studio_app")

# --- BUNDLE CATALOG ---

VISTA_FINALE_BUNDLE = {
    "name": "VISTA FINALE",
    "price": 750,
    "tokens": {"private_token": 20, "public_token": 10, "shake_token": 10},
}

CLASSES_BUNDLES = {
    "BELIEVE": {"price": 25, "tokens": 1},
    "EXCEED": {"price": 150, "tokens": 10},
    "ACHIEVE": {"price": 100, "tokens": 5},
}

INDIVIDUAL_BUNDLES = {
    "Workout of the day": {"price": 200, "tokens": 10, "currency": "workout_day_token"},
    "Private training": {"price": 300, "tokens": 10, "currency": "private_token"},
    "Semi-Private": {"price": 250, "tokens": 10, "currency": "semi_private_token"},
}

PROTEIN_BUNDLE = {"name": "Protein", "price": 40, "tokens": 10}
ESSENTIALS_BUNDLE = {"name": "Essentials", "price": 30}

TOKEN_FIELDS = ["private_token", "public_token", "semi_private_token", "workout_day_token", "shake_token"]


def parse_datetime(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def essentials_status(essentials_till, now: datetime = None) -> dict:
    now = now or datetime.now()
    expires = parse_datetime(essentials_till)
    if not expires:
        return {"expires_at": None, "days_left": None, "active": False, "expired": False, "expiring_soon": False}
    days_left = math.ceil((expires - now).total_seconds() / 86400)
    return {
        "expires_at": expires.isoformat(),
        "days_left": days_left,
        "active": days_left >= 0,
        "expired": days_left < 0,
        "expiring_soon": 0 <= days_left <= 7,
    }


def bundle_catalog() -> dict:
    return {
        "finale": VISTA_FINALE_BUNDLE,
        "classes": [{"name": name, **b} for name, b in CLASSES_BUNDLES.items()],
        "individual": [{"name": name, **b} for name, b in INDIVIDUAL_BUNDLES.items()],
        "protein": PROTEIN_BUNDLE,
        "essentials": ESSENTIALS_BUNDLE,
    }


class WalletService:
    """Service for balances, bundle purchases and admin credit management."""

    def get_balance(self, user_id: str) -> dict:
        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")
            return {
                "wallet": user.wallet or 0,
                "is_free": bool(user.is_free),
                "tokens": {field: getattr(user, field) or 0 for field in TOKEN_FIELDS},
                "loyalty_card": loyalty_card_status(user.punches),
                "essentials": essentials_status(user.essentials_till),
                "refill_date": user.refill_date,
            }
        finally:
            db.close()

    def list_transactions(self, user_id: str, limit: int = 50) -> list:
        db = get_db_session()
        try:
            rows = db.query(TransactionORM).filter(
                TransactionORM.user_id == user_id
            ).order_by(TransactionORM.created_at.desc()).limit(limit).all()
            return [
                {"id": t.id, "description": t.description, "type": t.type,
                 "amount": t.amount, "currency": t.currency, "created_at": t.created_at}
                for t in rows
            ]
        finally:
            db.close()

    # --- BUNDLES ---

    def _resolve_bundle(self, bundle_type: str, bundle_name: str) -> tuple:
        """Return (display name, price, {currency: tokens}, extends essentials)."""
        if bundle_type == "finale":
            return VISTA_FINALE_BUNDLE["name"], VISTA_FINALE_BUNDLE["price"], dict(VISTA_FINALE_BUNDLE["tokens"]), False
        if bundle_type == "classes":
            bundle = CLASSES_BUNDLES.get(bundle_name)
            if not bundle:
                raise HTTPException(status_code=400, detail="Invalid bundle name for classes.")
            return bundle_name, bundle["price"], {"public_token": bundle["tokens"]}, False
        if bundle_type == "individual":
            bundle = INDIVIDUAL_BUNDLES.get(bundle_name)
            if not bundle:
                raise HTTPException(status_code=400, detail="Invalid bundle name for individual.")
            return bundle_name, bundle["price"], {bundle["currency"]: bundle["tokens"]}, False
        if bundle_type == "protein":
            return PROTEIN_BUNDLE["name"], PROTEIN_BUNDLE["price"], {"shake_token": PROTEIN_BUNDLE["tokens"]}, False
        if bundle_type == "essentials":
            return ESSENTIALS_BUNDLE["name"], ESSENTIALS_BUNDLE["price"], {}, True
        raise HTTPException(status_code=400, detail="Invalid bundle type.")

    def purchase_bundle(self, user_id: str, bundle_type: str, bundle_name: str = None,
                        purchased_by: str = None) -> dict:
        """Charge the bundle to user_id. Admins buying for a client pass their own id as purchased_by."""
        name, price, tokens, extends_essentials = self._resolve_bundle(bundle_type, bundle_name)

        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")
            if (user.wallet or 0) < price:
                raise HTTPException(status_code=400, detail="Not enough credits to purchase the bundle.")

            user.wallet = (user.wallet or 0) - price
            record_transaction(db, user_id, f"Purchased {name} bundle", "bundle_purchase", -price, "credits")

            for currency, amount in tokens.items():
                setattr(user, currency, (getattr(user, currency) or 0) + amount)
                record_transaction(db, user_id, f"Received tokens for {name} bundle",
                                   "bundle_purchase", amount, currency)

            if extends_essentials:
                now = datetime.now()
                current = parse_datetime(user.essentials_till)
                base = current if current and current > now else now
                user.essentials_till = (base + relativedelta(months=1)).isoformat()
                record_transaction(db, user_id, f"Essentials valid until {user.essentials_till[:10]}",
                                   "essentials_update", 0, "none")

            db.commit()
            logger.info(f"Bundle purchased for {user_id} by {purchased_by or user_id}: {bundle_type}/{name} for {price} credits")
            return {
                "status": "success",
                "message": f"{name} bundle purchased successfully.",
                "wallet": user.wallet,
                "tokens": tokens,
                "essentials_till": user.essentials_till,
            }
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error purchasing bundle: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to purchase bundle: {str(e)}")
        finally:
            db.close()

    # --- ADMIN ---

    def update_user_credits(self, user_id: str, wallet: float, sale: float = 0,
                            token_updates: dict = None, essentials_till: str = None) -> dict:
        """Set a client's wallet, adjust token balances and optionally the essentials expiry."""
        token_updates = token_updates or {}
        unknown = [k for k in token_updates if k not in TOKEN_FIELDS]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown token type: {', '.join(unknown)}")
        if wallet < 0:
            raise HTTPException(status_code=400, detail="Wallet cannot be negative")
        if sale < 0 or sale > 100:
            raise HTTPException(status_code=400, detail="Sale must be between 0 and 100")
        if essentials_till and not parse_datetime(essentials_till):
            raise HTTPException(status_code=400, detail="Invalid essentials date")

        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")

            credits_added = wallet - (user.wallet or 0)
            user.wallet = wallet
            if credits_added > 0:
                record_transaction(db, user_id, f"Credits refilled: +{credits_added:g}", "credit_refill", credits_added, "credits")
            elif credits_added < 0:
                record_transaction(db, user_id, f"Credits deducted: {credits_added:g}", "credit_deduction", credits_added, "credits")

            bonus = 0
            if sale > 0 and credits_added > 0:
                bonus = math.floor(credits_added * sale / 100)
                if bonus:
                    user.wallet += bonus
                    record_transaction(db, user_id, f"Sale bonus ({sale:g}%)", "credit_sale", bonus, "credits")

            applied = {}
            for field, delta in token_updates.items():
                if not delta:
                    continue
                before = getattr(user, field) or 0
                after = max(0, before + delta)
                if after == before:
                    continue
                setattr(user, field, after)
                applied[field] = after - before
                record_transaction(db, user_id, f"Token update: {field.replace('_', ' ')} {delta:+d}",
                                   "token_update", after - before, field)

            if essentials_till and essentials_till != user.essentials_till:
                user.essentials_till = essentials_till
                record_transaction(db, user_id, f"Essentials valid until {essentials_till[:10]}",
                                   "essentials_update", 0, "none")

            user.refill_date = datetime.utcnow().isoformat()
            db.commit()

            logger.info(f"Credits updated for {user_id}: {credits_added:+g} credits, bonus {bonus}, tokens {applied}")
            email_service.send_refill_email(user.email, display_name(user), credits_added + bonus, user.wallet, applied)
            return {
                "status": "success",
                "message": "User credits updated successfully.",
                "wallet": user.wallet,
                "credits_added": credits_added,
                "bonus": bonus,
                "tokens": {field: getattr(user, field) or 0 for field in TOKEN_FIELDS},
            }
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating credits: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update credits: {str(e)}")
        finally:
            db.close()

    def set_free(self, user_id: str, is_free: bool) -> dict:
        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")
            if bool(user.is_free) != is_free:
                user.is_free = is_free
                if is_free:
                    record_transaction(db, user_id, "User set as free member", "free_user", 0, "none")
                else:
                    record_transaction(db, user_id, "Free membership removed", "free_user_cancel", 0, "none")
                db.commit()
                logger.info(f"Free status for {user_id} set to {is_free}")
            return {"status": "success", "is_free": is_free}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating free status: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update free status: {str(e)}")
        finally:
            db.close()


# Singleton instance
wallet_service = WalletService()


def get_wallet_service() -> WalletService:
    """Dependency injection helper."""
    return wallet_service
