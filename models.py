from pydantic import BaseModel
from typing import List, Optional, Dict

# --- AUTH ---
class RegisterRequest(BaseModel):
    username: str
    password: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

class RoleUpdate(BaseModel):
    role: str  # user | admin

# --- CATALOG ---
class CoachCreate(BaseModel):
    name: str
    email: str

class CoachUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class ActivityCreate(BaseModel):
    name: str
    credits: float
    capacity: int = 1
    semi_private: bool = False
    coach_id: Optional[str] = None

class ActivityUpdate(BaseModel):
    name: Optional[str] = None
    credits: Optional[float] = None
    capacity: Optional[int] = None
    semi_private: Optional[bool] = None
    coach_id: Optional[str] = None

# --- SLOTS ---
class TimeSlotCreate(BaseModel):
    activity_id: str
    coach_id: str
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str

class BulkTimeSlotCreate(BaseModel):
    activity_id: str
    coach_id: str
    dates: List[str]
    start_time: str
    end_time: str

# --- BOOKING ---
class BookSessionRequest(BaseModel):
    activity_id: str
    coach_id: str
    date: str
    start_time: str
    end_time: str
    user_id: Optional[str] = None  # Admin booking on behalf of a client

class RescheduleRequest(BaseModel):
    old_slot_id: str
    new_slot: BookSessionRequest

class PayForItemsRequest(BaseModel):
    item_ids: List[str]

# --- MARKET ---
class MarketItemCreate(BaseModel):
    name: str
    price: float
    quantity: int = 0
    image: Optional[str] = None
    is_clothing: bool = False

class MarketItemUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    image: Optional[str] = None
    is_clothing: Optional[bool] = None

class QuantityUpdate(BaseModel):
    quantity: int

class CartItem(BaseModel):
    id: str
    quantity: int = 1

class PurchaseRequest(BaseModel):
    cart: List[CartItem]

# --- WALLET ---
class BundlePurchaseRequest(BaseModel):
    bundle_type: str  # finale, classes, individual, protein, essentials
    bundle_name: Optional[str] = None
    user_id: Optional[str] = None  # Admin buying for a client

class CreditUpdateRequest(BaseModel):
    wallet: float
    sale: float = 0
    token_updates: Dict[str, int] = {}
    essentials_till: Optional[str] = None

class FreeStatusUpdate(BaseModel):
    is_free: bool

# --- PROFILE ---
class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    activity_level: Optional[str] = None
    height: Optional[float] = None

class MetricEntry(BaseModel):
    kind: str  # weight | waist
    value: float

class HealthGoalCreate(BaseModel):
    description: str

# --- HEALTH CHAT ---
class HealthQuestion(BaseModel):
    question: str
