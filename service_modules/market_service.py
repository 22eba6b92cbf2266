"""
Market Service - handles the studio shop: catalog, purchases and front-desk claims.
"""
from collections import Counter

from .base import (
    HTTPException, uuid, logging, datetime,
    get_db_session, UserORM, MarketItemORM, MarketTransactionORM,
    load_json, dump_json, record_transaction, display_name
)
from .loyalty import is_protein_item, apply_purchase_punches

logger = logging.getLogger("studio_app")


def item_to_dict(item: MarketItemORM) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "price": item.price,
        "quantity": item.quantity,
        "image": item.image,
        "is_clothing": item.is_clothing,
    }


class MarketService:
    """Service for the market catalog and purchases."""

    # --- CATALOG ---

    def list_items(self, category: str = "available") -> list:
        """category: available (in stock) | items (non-clothing) | clothes | all"""
        db = get_db_session()
        try:
            query = db.query(MarketItemORM)
            if category == "available":
                query = query.filter(MarketItemORM.quantity > 0)
            elif category == "items":
                query = query.filter(MarketItemORM.is_clothing == False)  # noqa: E712
            elif category == "clothes":
                query = query.filter(MarketItemORM.is_clothing == True)  # noqa: E712
            return [item_to_dict(i) for i in query.order_by(MarketItemORM.name).all()]
        finally:
            db.close()

    def create_item(self, data: dict) -> dict:
        if data["price"] < 0 or data.get("quantity", 0) < 0:
            raise HTTPException(status_code=400, detail="Price and quantity cannot be negative")
        db = get_db_session()
        try:
            item = MarketItemORM(id=str(uuid.uuid4()), **data)
            db.add(item)
            db.commit()
            db.refresh(item)
            logger.info(f"Market item created: {item.id} ({item.name})")
            return item_to_dict(item)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating market item: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create market item: {str(e)}")
        finally:
            db.close()

    def update_item(self, item_id: str, updates: dict) -> dict:
        if (updates.get("price") or 0) < 0 or (updates.get("quantity") or 0) < 0:
            raise HTTPException(status_code=400, detail="Price and quantity cannot be negative")
        db = get_db_session()
        try:
            item = db.query(MarketItemORM).filter(MarketItemORM.id == item_id).first()
            if not item:
                raise HTTPException(status_code=404, detail="Item not found")
            for field, value in updates.items():
                if value is not None:
                    setattr(item, field, value)
            db.commit()
            db.refresh(item)
            logger.info(f"Market item updated: {item_id}")
            return item_to_dict(item)
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating market item: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to update market item: {str(e)}")
        finally:
            db.close()

    def delete_item(self, item_id: str) -> dict:
        db = get_db_session()
        try:
            item = db.query(MarketItemORM).filter(MarketItemORM.id == item_id).first()
            if not item:
                raise HTTPException(status_code=404, detail="Item not found")
            db.delete(item)
            db.commit()
            logger.info(f"Market item deleted: {item_id}")
            return {"status": "success", "message": "Item deleted successfully"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting market item: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to delete market item: {str(e)}")
        finally:
            db.close()

    # --- PURCHASE ---

    def purchase(self, user_id: str, cart: list) -> dict:
        """Buy a cart of items. Shake tokens pay for protein units first."""
        cart = [line for line in cart if line["quantity"] > 0]
        if not cart:
            raise HTTPException(status_code=400, detail="Your cart is empty")

        db = get_db_session()
        try:
            user = db.query(UserORM).filter(UserORM.id == user_id).first()
            if not user:
                raise HTTPException(status_code=404, detail="User not found")

            shake_tokens = user.shake_token or 0
            tokens_used = 0
            protein_qty = 0
            total_price = 0.0
            unit_ids = []
            item_count = 0
            for line in cart:
                item = db.query(MarketItemORM).filter(MarketItemORM.id == line["id"]).first()
                if not item:
                    raise HTTPException(status_code=404, detail="Item not found")
                qty = line["quantity"]
                if (item.quantity or 0) < qty:
                    raise HTTPException(status_code=400, detail=f"Not enough {item.name} in stock")

                paid_units = qty
                if is_protein_item(item.name):
                    protein_qty += qty
                    covered = min(qty, shake_tokens)
                    shake_tokens -= covered
                    tokens_used += covered
                    paid_units = qty - covered
                total_price += paid_units * (item.price or 0)

                item.quantity = max(0, item.quantity - qty)
                unit_ids.extend([item.id] * qty)
                item_count += qty

            if (user.wallet or 0) < total_price:
                raise HTTPException(status_code=400, detail="You do not have enough credits to make this purchase.")

            new_punches, awarded = apply_purchase_punches(user.punches, protein_qty)
            user.wallet = (user.wallet or 0) - total_price
            user.shake_token = shake_tokens + awarded
            user.punches = new_punches

            order = MarketTransactionORM(
                id=str(uuid.uuid4()),
                user_id=user_id,
                items_json=dump_json(unit_ids),
                price=total_price,
                date=datetime.utcnow().isoformat(),
                claimed=False
            )
            db.add(order)

            record_transaction(db, user_id, f"Market purchase: {item_count} item(s)",
                               "market_purchase", -total_price, "credits")
            if tokens_used:
                record_transaction(db, user_id, f"Used {tokens_used} shake token(s) for market purchase",
                                   "shake_token_use", -tokens_used, "shake_token")
            if awarded:
                record_transaction(db, user_id, "Earned free shake tokens from punch card completion",
                                   "shake_token_reward", awarded, "shake_token")
            db.commit()

            logger.info(f"Market purchase {order.id} by {user_id}: {item_count} item(s), {total_price:g} credits")
            return {
                "status": "success",
                "message": "Purchase successful.",
                "order_id": order.id,
                "total_price": total_price,
                "shake_tokens_used": tokens_used,
                "shake_tokens_awarded": awarded,
                "punches": new_punches,
                "wallet": user.wallet,
            }
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error processing market purchase: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to complete purchase: {str(e)}")
        finally:
            db.close()

    # --- ORDERS ---

    def _order_to_dict(self, order: MarketTransactionORM, items_by_id: dict, user=None) -> dict:
        counts = Counter(load_json(order.items_json))
        details = [
            {"id": item_id, "name": items_by_id[item_id].name if item_id in items_by_id else "Unknown Item", "quantity": qty}
            for item_id, qty in counts.items()
        ]
        result = {
            "id": order.id,
            "user_id": order.user_id,
            "price": order.price,
            "date": order.date,
            "claimed": order.claimed,
            "item_details": details,
        }
        if user is not None:
            result["user_name"] = display_name(user)
        return result

    def _items_lookup(self, db, orders) -> dict:
        ids = set()
        for order in orders:
            ids.update(load_json(order.items_json))
        if not ids:
            return {}
        return {i.id: i for i in db.query(MarketItemORM).filter(MarketItemORM.id.in_(ids)).all()}

    def list_user_orders(self, user_id: str) -> list:
        db = get_db_session()
        try:
            orders = db.query(MarketTransactionORM).filter(
                MarketTransactionORM.user_id == user_id
            ).order_by(MarketTransactionORM.date.desc()).all()
            items = self._items_lookup(db, orders)
            return [self._order_to_dict(o, items) for o in orders]
        finally:
            db.close()

    def list_unclaimed_orders(self) -> list:
        db = get_db_session()
        try:
            orders = db.query(MarketTransactionORM).filter(
                MarketTransactionORM.claimed == False  # noqa: E712
            ).order_by(MarketTransactionORM.date.desc()).all()
            items = self._items_lookup(db, orders)
            user_ids = {o.user_id for o in orders}
            users = {u.id: u for u in db.query(UserORM).filter(UserORM.id.in_(user_ids)).all()} if user_ids else {}
            return [self._order_to_dict(o, items, users.get(o.user_id)) for o in orders]
        finally:
            db.close()

    def claim_order(self, order_id: str) -> dict:
        db = get_db_session()
        try:
            order = db.query(MarketTransactionORM).filter(MarketTransactionORM.id == order_id).first()
            if not order:
                raise HTTPException(status_code=404, detail="Order not found")
            if order.claimed:
                raise HTTPException(status_code=400, detail="Order already claimed")
            order.claimed = True
            db.commit()
            logger.info(f"Market order claimed: {order_id}")
            return {"status": "success", "message": "Order marked as claimed"}
        except HTTPException:
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error claiming order: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to claim order: {str(e)}")
        finally:
            db.close()


# Singleton instance
market_service = MarketService()


def get_market_service() -> MarketService:
    """Dependency injection helper."""
    return market_service
