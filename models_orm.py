from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey
from database import Base
from datetime import datetime

# --- CORE MODELS ---

class UserORM(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    email = Column(String, unique=True, index=True, nullable=True)
    hashed_password = Column(String)
    role = Column(String, index=True, default="user") # user, admin
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(String, default=lambda: datetime.utcnow().isoformat())

    # Profile
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    date_of_birth = Column(String, nullable=True)  # YYYY-MM-DD
    gender = Column(String, nullable=True)
    activity_level = Column(String, nullable=True)
    height = Column(Float, nullable=True)  # cm

    # Health tracking (JSON strings)
    weight_json = Column(String, nullable=True)  # [{"date": "...", "value": 80.5}]
    waist_json = Column(String, nullable=True)  # [{"date": "...", "value": 90}]
    health_goals_json = Column(String, nullable=True)  # [{"description": "...", "created_at": "...", "completed": false}]

    # Balances
    wallet = Column(Float, default=0)  # Credits
    is_free = Column(Boolean, default=False, index=True)  # Free members are never charged credits
    private_token = Column(Integer, default=0)
    public_token = Column(Integer, default=0)
    semi_private_token = Column(Integer, default=0)
    workout_day_token = Column(Integer, default=0)
    shake_token = Column(Integer, default=0)
    punches = Column(Integer, default=0)  # Loyalty card punches, 10 per card

    essentials_till = Column(String, nullable=True)  # ISO datetime
    refill_date = Column(String, nullable=True)  # ISO datetime of last admin refill


# --- STUDIO CATALOG ---

class CoachORM(Base):
    __tablename__ = "coaches"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    profile_picture = Column(String, nullable=True)  # URL path of uploaded image
    created_at = Column(String, default=lambda: datetime.utcnow().isoformat())


class ActivityORM(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    credits = Column(Float, default=0)  # Price in credits
    capacity = Column(Integer, default=1)
    is_group = Column(Boolean, default=False, index=True)
    is_semi_private = Column(Boolean, default=False, index=True)
    coach_id = Column(String, ForeignKey("coaches.id"), nullable=True, index=True)
    created_at = Column(String, default=lambda: datetime.utcnow().isoformat())


# --- SLOTS ---

class TimeSlotORM(Base):
    """Individual (1-on-1) session slots"""
    __tablename__ = "time_slots"

    id = Column(String, primary_key=True, index=True)
    activity_id = Column(String, ForeignKey("activities.id"), index=True)
    coach_id = Column(String, ForeignKey("coaches.id"), index=True)
    date = Column(String, index=True)  # ISO format YYYY-MM-DD
    start_time = Column(String)  # HH:MM format
    end_time = Column(String)    # HH:MM format
    user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    booked = Column(Boolean, default=False, index=True)
    booked_with_token = Column(Boolean, default=False)
    additions_json = Column(String, nullable=True)  # JSON: ["Protein Shake", ...]


class GroupTimeSlotORM(Base):
    """Group and semi-private session slots"""
    __tablename__ = "group_time_slots"

    id = Column(String, primary_key=True, index=True)
    activity_id = Column(String, ForeignKey("activities.id"), index=True)
    coach_id = Column(String, ForeignKey("coaches.id"), index=True)
    date = Column(String, index=True)
    start_time = Column(String)
    end_time = Column(String)
    user_ids_json = Column(String, nullable=True)  # JSON: ["user_id", ...]
    count = Column(Integer, default=0)
    booked = Column(Boolean, default=False, index=True)  # True when count reaches capacity
    booked_with_token_json = Column(String, nullable=True)  # JSON: user ids that paid with a token
    additions_json = Column(String, nullable=True)  # JSON: [{"user_id": "...", "items": [...]}]


# --- MARKET ---

class MarketItemORM(Base):
    __tablename__ = "market"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Float, default=0)
    quantity = Column(Integer, default=0)
    image = Column(String, nullable=True)
    is_clothing = Column(Boolean, default=False, index=True)


class MarketTransactionORM(Base):
    """Shop orders waiting to be handed over at the front desk"""
    __tablename__ = "market_transactions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True)
    items_json = Column(String)  # JSON: one item id per unit bought
    price = Column(Float, default=0)
    date = Column(String, default=lambda: datetime.utcnow().isoformat())
    claimed = Column(Boolean, default=False, index=True)


# --- LEDGER ---

class TransactionORM(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True)
    description = Column(String)
    type = Column(String, index=True)  # individual_session, bundle_purchase, credit_refill, ...
    amount = Column(Float, default=0)  # Signed: negative for debits
    currency = Column(String, index=True)  # credits, private_token, public_token, shake_token, ...
    created_at = Column(String, default=lambda: datetime.utcnow().isoformat(), index=True)
