"""
Base service utilities and shared imports.
All services should import from here for common functionality.
"""
from fastapi import HTTPException
import uuid
import json
import logging
from datetime import date, datetime, timedelta

from database import get_db_session, Base, engine
from models_orm import (
    UserORM, CoachORM, ActivityORM, TimeSlotORM, GroupTimeSlotORM,
    MarketItemORM, MarketTransactionORM, TransactionORM
)

# Re-export for convenience
__all__ = [
    'HTTPException', 'uuid', 'json', 'logging', 'date', 'datetime', 'timedelta',
    'get_db_session', 'Base', 'engine',
    'UserORM', 'CoachORM', 'ActivityORM', 'TimeSlotORM', 'GroupTimeSlotORM',
    'MarketItemORM', 'MarketTransactionORM', 'TransactionORM',
    'load_json', 'dump_json', 'record_transaction', 'today_str', 'now_hhmm',
    'display_name', 'TOKEN_CURRENCIES'
]

logger = logging.getLogger("studio_app")

TOKEN_CURRENCIES = ["private_token", "public_token", "semi_private_token", "shake_token"]


def load_json(value, default=None):
    """Decode a JSON text column, falling back to `default` (an empty list) on null or bad data."""
    if default is None:
        default = []
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Could not decode JSON column value: {value!r}")
        return default


def dump_json(value) -> str:
    return json.dumps(value)


def record_transaction(db, user_id: str, description: str, type: str, amount: float, currency: str) -> TransactionORM:
    """Add a ledger row to the current session. The caller commits."""
    tx = TransactionORM(
        id=str(uuid.uuid4()),
        user_id=user_id,
        description=description,
        type=type,
        amount=amount,
        currency=currency,
        created_at=datetime.utcnow().isoformat()
    )
    db.add(tx)
    return tx


def today_str() -> str:
    return date.today().isoformat()


def now_hhmm() -> str:
    return datetime.now().strftime("%H:%M")


def display_name(user) -> str:
    if not user:
        return "Unknown User"
    full = " ".join(p for p in [user.first_name, user.last_name] if p)
    return full or user.username
